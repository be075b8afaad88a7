"""Typed error model with stable, machine-readable error codes.

Every failure the verification core can report is one of these classes so the
CLI (and any other caller) can tell "tampering detected" apart from "no
stronger verification exists".
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Mapping, Optional


class ErrorCode(str, Enum):
    """Stable error identifiers used across API surfaces."""

    NETWORK_UNAVAILABLE = "E_NETWORK_UNAVAILABLE"
    VERSION_NOT_FOUND = "E_VERSION_NOT_FOUND"
    INVALID_VERSION_SPECIFIER = "E_INVALID_VERSION_SPECIFIER"
    CHECKSUM_MISMATCH = "E_CHECKSUM_MISMATCH"
    SIGNATURE_INVALID = "E_SIGNATURE_INVALID"
    INVALID_CHECKSUM_FORMAT = "E_INVALID_CHECKSUM_FORMAT"
    CONFIG = "E_CONFIG"
    UNVERIFIED = "E_UNVERIFIED"


class VergateError(Exception):
    """Base error class that carries code, optional hint, and context."""

    code_enum: ErrorCode = ErrorCode.CONFIG
    fatal: bool = True

    def __init__(
        self,
        message: str,
        *,
        hint: Optional[str] = None,
        context: Optional[Mapping[str, str]] = None,
    ) -> None:
        super().__init__(message)
        self.code = self.code_enum.value
        self.hint = hint
        self.context: Dict[str, str] = dict(context or {})

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.hint:
            parts.append(f"Hint: {self.hint}")
        for key, value in self.context.items():
            if value:
                parts.append(f"  {key}: {value}")
        return "\n".join(parts)

    def to_dict(self) -> Dict[str, object]:
        payload: Dict[str, object] = {
            "code": self.code,
            "message": str(self),
            "context": dict(self.context),
        }
        if self.hint is not None:
            payload["hint"] = self.hint
        return payload


class NetworkUnavailable(VergateError):
    """An index, checksum or signature fetch failed, or a tool is missing.

    Non-fatal inside a verification tier: the tier is reported unavailable.
    """

    code_enum = ErrorCode.NETWORK_UNAVAILABLE
    fatal = False


class VersionNotFound(VergateError):
    """No upstream release matched the requested specifier."""

    code_enum = ErrorCode.VERSION_NOT_FOUND


class InvalidVersionSpecifier(VergateError):
    code_enum = ErrorCode.INVALID_VERSION_SPECIFIER


class ChecksumMismatch(VergateError):
    """Expected and actual digests differ. Never downgraded to a warning."""

    code_enum = ErrorCode.CHECKSUM_MISMATCH


class SignatureInvalid(VergateError):
    """A signing tool ran and did not report a good signature."""

    code_enum = ErrorCode.SIGNATURE_INVALID


class InvalidChecksumFormat(VergateError):
    """A digest is neither 64 nor 128 hex characters."""

    code_enum = ErrorCode.INVALID_CHECKSUM_FORMAT


class ConfigError(VergateError):
    code_enum = ErrorCode.CONFIG


class UnverifiedArtifact(VergateError):
    """Only trust-on-first-use was possible and the policy requires more."""

    code_enum = ErrorCode.UNVERIFIED


__all__ = [
    "ChecksumMismatch",
    "ConfigError",
    "ErrorCode",
    "InvalidChecksumFormat",
    "InvalidVersionSpecifier",
    "NetworkUnavailable",
    "SignatureInvalid",
    "UnverifiedArtifact",
    "VergateError",
    "VersionNotFound",
]
