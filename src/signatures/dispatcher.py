"""Tier 1 dispatch: per-ecosystem signature plans over injectable backends."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from common.errors import NetworkUnavailable
from common.http_client import HttpSettings
from constants import Constants
from ecosystems import GO_DL, HASHICORP_RELEASES, KUBERNETES_RELEASE, NODEJS_DIST, PYTHON_FTP, get_strategy, map_arch
from versioning.models import Ecosystem, to_ecosystem

from .base import SignatureBackend, SignatureRequest, SignatureResult
from .gpg import GpgBackend
from .sigstore import KUBERNETES_IDENTITY, SigstoreBackend, python_signing_identity, python_supports_sigstore

logger = logging.getLogger(__name__)


@dataclass
class SignatureReport:
    """What Tier 1 found; ``result`` is None when no step could verify."""
    result: Optional[SignatureResult] = None
    attempts: List[str] = field(default_factory=list)

    @property
    def verified(self) -> bool:
        return self.result is not None


def build_plan(
    ecosystem: Ecosystem,
    version: str,
    artifact_path: str,
    filename: str,
    arch: str = Constants.DEFAULT_ARCH,
) -> List[SignatureRequest]:
    """Ordered Tier 1 steps for an artifact. Empty when no scheme exists."""
    strategy = get_strategy(ecosystem)
    keyring = strategy.keyring if strategy else None
    plan: List[SignatureRequest] = []

    if ecosystem is Ecosystem.PYTHON:
        base = f"{PYTHON_FTP}/{version}/{filename}"
        identity = python_signing_identity(version)
        if python_supports_sigstore(version) and identity is not None:
            plan.append(SignatureRequest(
                backend="sigstore",
                artifact_path=artifact_path,
                filename=filename,
                signature_url=f"{base}.sig",
                certificate_url=f"{base}.crt",
                identity=identity[0],
                issuer=identity[1],
            ))
        plan.append(SignatureRequest(
            backend="gpg", artifact_path=artifact_path, filename=filename,
            signature_url=f"{base}.asc", keyring=keyring,
        ))
    elif ecosystem is Ecosystem.NODEJS:
        manifest = f"{NODEJS_DIST}/v{version}/SHASUMS256.txt"
        plan.append(SignatureRequest(
            backend="gpg", artifact_path=artifact_path, filename=filename,
            manifest_url=manifest,
            manifest_signature_urls=(f"{manifest}.sig", f"{manifest}.asc"),
            keyring=keyring,
        ))
    elif ecosystem is Ecosystem.GOLANG:
        plan.append(SignatureRequest(
            backend="gpg", artifact_path=artifact_path, filename=filename,
            signature_url=f"{GO_DL}/{filename}.asc", keyring=keyring,
        ))
    elif ecosystem is Ecosystem.TERRAFORM:
        manifest = f"{HASHICORP_RELEASES}/{version}/terraform_{version}_SHA256SUMS"
        plan.append(SignatureRequest(
            backend="gpg", artifact_path=artifact_path, filename=filename,
            manifest_url=manifest, manifest_signature_urls=(f"{manifest}.sig",),
            keyring=keyring,
        ))
    elif ecosystem is Ecosystem.KUBECTL:
        base = f"{KUBERNETES_RELEASE}/v{version}/bin/linux/{map_arch(arch, 'amd64', 'arm64')}/kubectl"
        plan.append(SignatureRequest(
            backend="sigstore", artifact_path=artifact_path, filename=filename,
            signature_url=f"{base}.sig", certificate_url=f"{base}.cert",
            identity=KUBERNETES_IDENTITY[0], issuer=KUBERNETES_IDENTITY[1],
        ))
    return plan


class SignatureVerifier:
    """Runs an ecosystem's plan, stopping at the first definitive answer.

    A step whose backend is unavailable (tool missing, material missing, no
    keyring or identity) is recorded and skipped. ``SignatureInvalid`` and
    ``ChecksumMismatch`` propagate immediately.
    """

    def __init__(
        self,
        keyring_root: str = Constants.DEFAULT_KEYRING_DIR,
        backends: Optional[Dict[str, SignatureBackend]] = None,
        settings: Optional[HttpSettings] = None,
    ):
        if backends is None:
            backends = {
                "gpg": GpgBackend(keyring_root, settings=settings),
                "sigstore": SigstoreBackend(settings=settings),
            }
        self.backends = backends

    def verify(
        self,
        name: str,
        version: str,
        artifact_path: str,
        filename: str,
        arch: str = Constants.DEFAULT_ARCH,
    ) -> SignatureReport:
        report = SignatureReport()
        ecosystem = to_ecosystem(name)
        if ecosystem is None:
            report.attempts.append(f"no signature scheme for '{name}'")
            return report
        plan = build_plan(ecosystem, version, artifact_path, filename, arch)
        if not plan:
            report.attempts.append(f"no signature scheme for {ecosystem.value}")
            return report

        for step in plan:
            backend = self.backends.get(step.backend)
            if backend is None or not backend.is_available():
                report.attempts.append(f"{step.backend}: not available")
                logger.info("Tier 1 %s unavailable for %s", step.backend, filename)
                continue
            try:
                report.result = backend.verify(step)
            except NetworkUnavailable as exc:
                report.attempts.append(f"{step.backend}: {exc.args[0]}")
                logger.info("Tier 1 %s unavailable for %s: %s", step.backend, filename, exc.args[0])
                continue
            report.attempts.append(f"{step.backend}: {report.result.detail}")
            return report
        return report
