"""GPG backend: detached signatures and signed checksum manifests.

Each call gets its own temporary GNUPGHOME populated from the ecosystem's
keyring directory, passed to gpg through the subprocess environment only.

Keyring layout under the keyring root::

    <keyring>/keyring/          prebuilt keyring, copied into the call home
    <keyring>/*.asc|*.gpg       exported public keys, imported one by one
    <keyring>/keys/*.asc|*.gpg  same, nested
"""
from __future__ import annotations

import glob
import logging
import os
import shutil
import tempfile
from typing import Dict, List, Optional

from common.errors import ChecksumMismatch, NetworkUnavailable, SignatureInvalid
from common.hashing import algorithm_for_digest, compute_digest, digests_match
from common.http_client import HttpSettings
from checksums.published import parse_checksums_manifest
from constants import Constants

from .base import Runner, SignatureBackend, SignatureRequest, SignatureResult, Which, fetch_material

logger = logging.getLogger(__name__)

GOODSIG = "[GNUPG:] GOODSIG"
_CLEARSIGN_HEADER = "-----BEGIN PGP SIGNED MESSAGE-----"


def has_good_signature(status_output: str) -> bool:
    """True when gpg's status stream reports a good signature."""
    return any(line.startswith(GOODSIG) for line in (status_output or "").splitlines())


def find_key_files(keyring_dir: str) -> List[str]:
    files: List[str] = []
    for base in (keyring_dir, os.path.join(keyring_dir, "keys")):
        for pattern in ("*.asc", "*.gpg"):
            files.extend(glob.glob(os.path.join(base, pattern)))
    return sorted(files)


def _strip_clearsign(text: str) -> str:
    """Body of a clearsigned message, without armor lines."""
    body: List[str] = []
    in_body = False
    for line in text.splitlines():
        if line.startswith("-----BEGIN PGP SIGNATURE-----"):
            break
        if in_body:
            body.append(line[2:] if line.startswith("- ") else line)
        elif not line.strip():
            in_body = True
    return "\n".join(body)


class GpgBackend(SignatureBackend):
    """Verifies via ``gpg --batch --status-fd 1 --verify``."""

    binary = Constants.GPG_BINARY

    def __init__(
        self,
        keyring_root: str,
        runner: Optional[Runner] = None,
        which: Optional[Which] = None,
        settings: Optional[HttpSettings] = None,
    ):
        super().__init__(runner=runner, which=which, settings=settings)
        self.keyring_root = keyring_root

    @property
    def name(self) -> str:
        return "gpg"

    def keyring_dir(self, keyring: Optional[str]) -> Optional[str]:
        if not keyring:
            return None
        path = os.path.join(self.keyring_root, keyring)
        return path if os.path.isdir(path) else None

    def _env(self, home: str) -> Dict[str, str]:
        env = dict(os.environ)
        env["GNUPGHOME"] = home
        return env

    def _prepare_home(self, keyring: Optional[str], home: str) -> None:
        """Populate ``home`` from the keyring directory or raise NetworkUnavailable."""
        keyring_dir = self.keyring_dir(keyring)
        if keyring_dir is None:
            raise NetworkUnavailable(f"No GPG keyring for '{keyring}' under {self.keyring_root}")
        os.chmod(home, 0o700)

        prebuilt = os.path.join(keyring_dir, "keyring")
        if os.path.isdir(prebuilt):
            shutil.copytree(prebuilt, home, dirs_exist_ok=True)
            # copytree carries over the source directory mode
            os.chmod(home, 0o700)
            return

        key_files = find_key_files(keyring_dir)
        if not key_files:
            raise NetworkUnavailable(f"GPG keyring '{keyring}' contains no key files")
        for key_file in key_files:
            proc = self._run(self._argv("--batch", "--import", key_file), self._env(home))
            if proc.returncode != 0:
                raise NetworkUnavailable(
                    f"Unable to import GPG key {os.path.basename(key_file)}",
                    context={"stderr": (proc.stderr or "").strip()[:300]},
                )

    def _verify_signature(self, home: str, *files: str) -> str:
        proc = self._run(
            self._argv("--batch", "--status-fd", "1", "--verify", *files),
            self._env(home),
        )
        if proc.returncode != 0 or not has_good_signature(proc.stdout):
            raise SignatureInvalid(
                "GPG did not report a good signature",
                context={"file": os.path.basename(files[-1]), "stderr": (proc.stderr or "").strip()[:300]},
            )
        for line in (proc.stdout or "").splitlines():
            if line.startswith(GOODSIG):
                return line[len(GOODSIG):].strip()
        return ""

    def verify(self, request: SignatureRequest) -> SignatureResult:
        if not self.is_available():
            raise NetworkUnavailable("gpg is not installed")
        with tempfile.TemporaryDirectory(prefix="vergate-gnupg-") as home, \
                tempfile.TemporaryDirectory(prefix="vergate-sig-") as workdir:
            self._prepare_home(request.keyring, home)
            if request.manifest_url:
                return self._verify_manifest(request, home, workdir)
            if not request.signature_url:
                raise NetworkUnavailable("No signature URL for GPG verification")
            signature = fetch_material(request.signature_url, workdir, self.settings)
            signer = self._verify_signature(home, signature, request.artifact_path)
            logger.info("GPG signature good for %s (%s)", request.filename, signer)
            return SignatureResult(self.name, f"detached GPG signature good ({signer})")

    def _verify_manifest(self, request: SignatureRequest, home: str, workdir: str) -> SignatureResult:
        signature = None
        for url in request.manifest_signature_urls:
            try:
                signature = fetch_material(url, workdir, self.settings)
                break
            except NetworkUnavailable:
                logger.debug("Manifest signature not available at %s", url)
        if signature is None:
            raise NetworkUnavailable("No manifest signature could be downloaded")

        with open(signature, "r", encoding="utf-8", errors="replace") as handle:
            signature_text = handle.read()
        if signature_text.lstrip().startswith(_CLEARSIGN_HEADER):
            signer = self._verify_signature(home, signature)
            manifest_text = _strip_clearsign(signature_text)
        else:
            manifest = fetch_material(request.manifest_url, workdir, self.settings)
            signer = self._verify_signature(home, signature, manifest)
            with open(manifest, "r", encoding="utf-8", errors="replace") as handle:
                manifest_text = handle.read()

        expected = parse_checksums_manifest(manifest_text, request.filename)
        if expected is None:
            raise NetworkUnavailable(f"{request.filename} is not listed in the signed manifest")
        actual = compute_digest(request.artifact_path, algorithm_for_digest(expected))
        if not digests_match(expected, actual):
            raise ChecksumMismatch(
                f"{request.filename} does not match its signed manifest entry",
                context={"expected": expected, "actual": actual},
            )
        logger.info("Signed manifest good for %s (%s)", request.filename, signer)
        return SignatureResult(self.name, f"signed manifest good ({signer})", digest=actual)
