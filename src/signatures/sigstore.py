"""Sigstore backend using ``cosign verify-blob``."""
from __future__ import annotations

import logging
import os
import tempfile
from typing import Dict, Optional, Tuple

from packaging.version import InvalidVersion, Version

from common.errors import NetworkUnavailable, SignatureInvalid
from constants import Constants

from .base import SignatureBackend, SignatureRequest, SignatureResult, fetch_material

logger = logging.getLogger(__name__)

GITHUB_ISSUER = "https://github.com/login/oauth"
GOOGLE_ISSUER = "https://accounts.google.com"

# CPython release managers by minor version (3.x)
PYTHON_RELEASE_MANAGERS: Dict[int, Tuple[str, str]] = {
    7: ("nad@python.org", GITHUB_ISSUER),
    8: ("lukasz@langa.pl", GITHUB_ISSUER),
    9: ("lukasz@langa.pl", GITHUB_ISSUER),
    10: ("pablogsal@python.org", GOOGLE_ISSUER),
    11: ("pablogsal@python.org", GOOGLE_ISSUER),
    12: ("thomas@python.org", GOOGLE_ISSUER),
    13: ("thomas@python.org", GOOGLE_ISSUER),
    14: ("hugo@python.org", GITHUB_ISSUER),
    15: ("hugo@python.org", GITHUB_ISSUER),
    16: ("savannah@python.org", GITHUB_ISSUER),
    17: ("savannah@python.org", GITHUB_ISSUER),
}

PYTHON_SIGSTORE_SINCE = Version("3.11.0")

KUBERNETES_IDENTITY = ("krel-staging@k8s-releng-prod.iam.gserviceaccount.com", GOOGLE_ISSUER)


def python_signing_identity(version: str) -> Optional[Tuple[str, str]]:
    """(identity, issuer) of the release manager who signed ``version``."""
    try:
        parsed = Version(version)
    except InvalidVersion:
        return None
    if parsed.major != 3:
        return None
    return PYTHON_RELEASE_MANAGERS.get(parsed.minor)


def python_supports_sigstore(version: str) -> bool:
    try:
        return Version(version) >= PYTHON_SIGSTORE_SINCE
    except InvalidVersion:
        return False


class SigstoreBackend(SignatureBackend):
    """Keyless verification against a certificate identity and OIDC issuer."""

    binary = Constants.COSIGN_BINARY

    @property
    def name(self) -> str:
        return "sigstore"

    def verify(self, request: SignatureRequest) -> SignatureResult:
        if not self.is_available():
            raise NetworkUnavailable("cosign is not installed")
        if not request.identity or not request.issuer:
            raise NetworkUnavailable(f"No Sigstore identity known for {request.filename}")

        with tempfile.TemporaryDirectory(prefix="vergate-sigstore-") as workdir:
            args = [
                "verify-blob",
                "--certificate-identity", request.identity,
                "--certificate-oidc-issuer", request.issuer,
            ]
            if request.bundle_url:
                args += ["--bundle", fetch_material(request.bundle_url, workdir, self.settings)]
            elif request.signature_url and request.certificate_url:
                args += [
                    "--signature", fetch_material(request.signature_url, workdir, self.settings),
                    "--certificate", fetch_material(request.certificate_url, workdir, self.settings),
                ]
            else:
                raise NetworkUnavailable("No Sigstore signature material configured")
            args.append(request.artifact_path)

            proc = self._run(self._argv(*args), dict(os.environ))
            if proc.returncode != 0:
                raise SignatureInvalid(
                    "cosign rejected the signature",
                    context={
                        "identity": request.identity,
                        "stderr": (proc.stderr or "").strip()[:300],
                    },
                )
        logger.info("Sigstore signature good for %s (%s)", request.filename, request.identity)
        return SignatureResult(self.name, f"Sigstore signature good ({request.identity})")
