"""Data models for tiered verification."""

import os
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import List, Optional
from urllib.parse import urlsplit

from common.errors import VergateError
from constants import Category, Constants, ExitCodes


class Tier(IntEnum):
    SIGNATURE = 1
    PINNED = 2
    PUBLISHED = 3
    TOFU = 4


class TierStatus(Enum):
    VERIFIED = "verified"
    MISMATCH = "mismatch"
    UNAVAILABLE = "unavailable"


class OutcomeState(Enum):
    VERIFIED = "verified"
    VERIFIED_WITH_WARNING = "verified_with_warning"
    FAILED = "failed"

    @property
    def exit_code(self) -> ExitCodes:
        return {
            OutcomeState.VERIFIED: ExitCodes.SUCCESS,
            OutcomeState.VERIFIED_WITH_WARNING: ExitCodes.UNVERIFIED,
            OutcomeState.FAILED: ExitCodes.VERIFICATION_FAILED,
        }[self]


@dataclass(frozen=True)
class Artifact:
    """A downloaded file awaiting verification."""
    category: Category
    name: str
    version: str
    path: str
    url: Optional[str] = None
    arch: str = Constants.DEFAULT_ARCH

    @property
    def filename(self) -> str:
        """Upstream file name: URL basename when known, else the local name."""
        if self.url:
            base = os.path.basename(urlsplit(self.url).path)
            if base:
                return base
        return os.path.basename(self.path)


@dataclass(frozen=True)
class TierResult:
    tier: Tier
    status: TierStatus
    detail: str
    digest: Optional[str] = None
    error: Optional[VergateError] = None

    def describe(self) -> str:
        return f"Tier {int(self.tier)} ({self.tier.name.lower()}): {self.status.value} - {self.detail}"


@dataclass
class VerificationOutcome:
    """Terminal result of one ``verify`` call."""
    artifact: Artifact
    state: OutcomeState
    tier: Tier
    status: TierStatus
    digest: Optional[str] = None
    results: List[TierResult] = field(default_factory=list)
    error: Optional[VergateError] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.state is not OutcomeState.FAILED

    @property
    def trail(self) -> List[str]:
        return [result.describe() for result in self.results]

    @property
    def exit_code(self) -> ExitCodes:
        return self.state.exit_code

    def raise_for_status(self) -> None:
        """Re-raise the error that failed verification, if any."""
        if self.state is OutcomeState.FAILED and self.error is not None:
            raise self.error
