"""Data models for pinned checksums."""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from constants import Category


@dataclass(frozen=True)
class ChecksumRecord:
    """One pinned digest from the checksum database."""
    category: Category
    name: str
    version: str
    digest: str
    algorithm: str
    url: Optional[str] = None
    added: Optional[str] = None

    def to_entry(self) -> Dict[str, Any]:
        """Serialize to the on-disk per-version mapping."""
        entry: Dict[str, Any] = {self.algorithm: self.digest}
        if self.url:
            entry["url"] = self.url
        if self.added:
            entry["added"] = self.added
        return entry
