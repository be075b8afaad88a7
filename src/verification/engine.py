"""Four-tier verification of downloaded artifacts.

Tiers, in order of trust:

  1. publisher signature (GPG or Sigstore)
  2. checksum pinned in the reviewed database
  3. checksum fetched from the publisher
  4. trust on first use: compute and log the digest

The first tier that verifies ends the run. A mismatch, invalid signature or
malformed checksum at any tier fails immediately without trying later tiers.
Tiers that cannot run report "unavailable" and hand over to the next one.
"""
from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional

from checksums.database import ChecksumDatabase
from checksums.published import ChecksumQuery, PublishedChecksumFetcher
from cli_config import VerifierConfig
from common.errors import (
    ChecksumMismatch,
    InvalidChecksumFormat,
    NetworkUnavailable,
    SignatureInvalid,
    UnverifiedArtifact,
)
from common.hashing import SHA256, compute_digest, digests_match
from common.http_client import HttpSettings
from common.logging_utils import extra_context
from constants import Category
from signatures.dispatcher import SignatureVerifier

from .models import (
    Artifact,
    OutcomeState,
    Tier,
    TierResult,
    TierStatus,
    VerificationOutcome,
)

logger = logging.getLogger(__name__)

_FATAL = (ChecksumMismatch, SignatureInvalid, InvalidChecksumFormat)


class _Digests:
    """Per-call digest memo so each algorithm is computed once."""

    def __init__(self, path: str):
        self.path = path
        self._values: Dict[str, str] = {}

    def get(self, algorithm: str) -> str:
        if algorithm not in self._values:
            self._values[algorithm] = compute_digest(self.path, algorithm)
        return self._values[algorithm]


class TieredVerificationEngine:
    """Runs the tier state machine for one artifact at a time.

    Instances hold no per-artifact state, so one engine can verify
    independent artifacts from several threads. Network limits come from
    ``settings`` and apply to this engine only.
    """

    def __init__(
        self,
        database: ChecksumDatabase,
        published: Optional[PublishedChecksumFetcher] = None,
        signatures: Optional[SignatureVerifier] = None,
        require_verified: bool = False,
        settings: Optional[HttpSettings] = None,
    ):
        self.database = database
        self.settings = settings
        self.published = published if published is not None else PublishedChecksumFetcher(settings)
        self.signatures = signatures if signatures is not None else SignatureVerifier(settings=settings)
        self.require_verified = require_verified

    @classmethod
    def from_config(cls, config: VerifierConfig) -> "TieredVerificationEngine":
        """Build an engine and its collaborators from one ``VerifierConfig``."""
        settings = config.http_settings
        return cls(
            ChecksumDatabase(config.database_path),
            published=PublishedChecksumFetcher(settings),
            signatures=SignatureVerifier(config.keyring_root, settings=settings),
            require_verified=config.require_verified,
            settings=settings,
        )

    def verify(self, artifact: Artifact) -> VerificationOutcome:
        """Verify ``artifact``; never raises for verification failures.

        Call ``raise_for_status()`` on the outcome to turn a failure into
        the underlying exception.
        """
        digests = _Digests(artifact.path)
        results: List[TierResult] = []
        tiers: List[Callable[[Artifact, _Digests], TierResult]] = [
            self._tier_signature,
            self._tier_pinned,
            self._tier_published,
        ]
        logger.info("Verifying %s %s (%s)", artifact.name, artifact.version, artifact.filename)

        for run_tier in tiers:
            result = run_tier(artifact, digests)
            results.append(result)
            self._log_result(artifact, result)
            if result.status is TierStatus.VERIFIED:
                return VerificationOutcome(
                    artifact=artifact,
                    state=OutcomeState.VERIFIED,
                    tier=result.tier,
                    status=result.status,
                    digest=result.digest,
                    results=results,
                    message=result.detail,
                )
            if result.status is TierStatus.MISMATCH:
                return VerificationOutcome(
                    artifact=artifact,
                    state=OutcomeState.FAILED,
                    tier=result.tier,
                    status=result.status,
                    digest=result.digest,
                    results=results,
                    error=result.error,
                    message=result.detail,
                )

        return self._tier_tofu(artifact, digests, results)

    @staticmethod
    def _log_result(artifact: Artifact, result: TierResult) -> None:
        extra = extra_context(
            event="verify_tier",
            component="verification",
            tier=int(result.tier),
            outcome=result.status.value,
            target=artifact.name,
        )
        if result.status is TierStatus.MISMATCH:
            logger.error(result.describe(), extra=extra)
        else:
            logger.info(result.describe(), extra=extra)

    def _fatal(self, tier: Tier, exc, digest: Optional[str] = None) -> TierResult:
        return TierResult(tier, TierStatus.MISMATCH, exc.args[0], digest=digest, error=exc)

    def _tier_signature(self, artifact: Artifact, digests: _Digests) -> TierResult:
        if artifact.category is Category.TOOL:
            return TierResult(Tier.SIGNATURE, TierStatus.UNAVAILABLE, "skipped for tool artifacts")
        try:
            report = self.signatures.verify(
                artifact.name, artifact.version, artifact.path, artifact.filename, artifact.arch
            )
        except _FATAL as exc:
            return self._fatal(Tier.SIGNATURE, exc)
        if report.verified:
            digest = report.result.digest or digests.get(SHA256)
            return TierResult(Tier.SIGNATURE, TierStatus.VERIFIED, report.result.detail, digest=digest)
        return TierResult(Tier.SIGNATURE, TierStatus.UNAVAILABLE, "; ".join(report.attempts))

    def _tier_pinned(self, artifact: Artifact, digests: _Digests) -> TierResult:
        try:
            record = self.database.lookup(artifact.category, artifact.name, artifact.version)
        except InvalidChecksumFormat as exc:
            return self._fatal(Tier.PINNED, exc)
        if record is None:
            return TierResult(
                Tier.PINNED,
                TierStatus.UNAVAILABLE,
                f"no pinned checksum for {artifact.category.section}.{artifact.name}"
                f".versions.{artifact.version}",
            )
        actual = digests.get(record.algorithm)
        if not digests_match(record.digest, actual):
            exc = ChecksumMismatch(
                f"{artifact.filename} does not match the pinned {record.algorithm}",
                context={"expected": record.digest, "actual": actual},
            )
            return self._fatal(Tier.PINNED, exc, digest=actual)
        return TierResult(Tier.PINNED, TierStatus.VERIFIED, f"matches pinned {record.algorithm}", digest=actual)

    def _tier_published(self, artifact: Artifact, digests: _Digests) -> TierResult:
        if artifact.category is Category.TOOL and not self.published.has_tool_fetcher(artifact.name):
            return TierResult(Tier.PUBLISHED, TierStatus.UNAVAILABLE,
                              f"no published checksum source registered for tool {artifact.name}")
        query = ChecksumQuery(
            name=artifact.name,
            version=artifact.version,
            filename=artifact.filename,
            url=artifact.url,
            arch=artifact.arch,
        )
        try:
            published = self.published.fetch(artifact.category, query)
        except NetworkUnavailable as exc:
            return TierResult(Tier.PUBLISHED, TierStatus.UNAVAILABLE, exc.args[0])
        except InvalidChecksumFormat as exc:
            return self._fatal(Tier.PUBLISHED, exc)
        if published is None:
            return TierResult(Tier.PUBLISHED, TierStatus.UNAVAILABLE,
                              f"publisher lists no checksum for {artifact.filename}")
        actual = digests.get(published.algorithm)
        if not digests_match(published.digest, actual):
            exc = ChecksumMismatch(
                f"{artifact.filename} does not match the publisher's {published.algorithm}",
                context={"expected": published.digest, "actual": actual, "source": published.source},
            )
            return self._fatal(Tier.PUBLISHED, exc, digest=actual)
        return TierResult(Tier.PUBLISHED, TierStatus.VERIFIED,
                          f"matches publisher checksum ({published.source})", digest=actual)

    def _tier_tofu(
        self, artifact: Artifact, digests: _Digests, results: List[TierResult]
    ) -> VerificationOutcome:
        digest = digests.get(SHA256)
        entry = f"{artifact.category.section}.{artifact.name}.versions.{artifact.version}"
        if self.require_verified:
            error = UnverifiedArtifact(
                f"No verified checksum for {artifact.name} {artifact.version}",
                hint=f"Add sha256 {digest} as {entry} in {self.database.path}",
            )
            result = TierResult(Tier.TOFU, TierStatus.UNAVAILABLE,
                                f"verification required but only TOFU possible; missing {entry}",
                                digest=digest, error=error)
            results.append(result)
            logger.error("%s. %s", error.args[0], error.hint)
            return VerificationOutcome(
                artifact=artifact,
                state=OutcomeState.FAILED,
                tier=Tier.TOFU,
                status=TierStatus.UNAVAILABLE,
                digest=digest,
                results=results,
                error=error,
                message=result.detail,
            )

        result = TierResult(Tier.TOFU, TierStatus.UNAVAILABLE,
                            f"trust on first use, sha256 {digest}", digest=digest)
        results.append(result)
        logger.warning(
            "SECURITY: %s %s could not be verified against any trusted source; "
            "computed sha256 %s. Pin it as %s to verify future builds.",
            artifact.name, artifact.version, digest, entry,
        )
        return VerificationOutcome(
            artifact=artifact,
            state=OutcomeState.VERIFIED_WITH_WARNING,
            tier=Tier.TOFU,
            status=TierStatus.UNAVAILABLE,
            digest=digest,
            results=results,
            message=result.detail,
        )
