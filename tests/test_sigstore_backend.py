"""Tests for the Sigstore backend and release-manager identities."""

import os
import subprocess
from unittest.mock import patch

import pytest

from common.errors import NetworkUnavailable, SignatureInvalid
from common.http_client import HttpSettings
from signatures.base import SignatureRequest, url_basename
from signatures.sigstore import (
    GITHUB_ISSUER,
    GOOGLE_ISSUER,
    SigstoreBackend,
    python_signing_identity,
    python_supports_sigstore,
)


def fake_fetch(url, workdir, settings=None):
    path = os.path.join(workdir, url_basename(url))
    with open(path, "w", encoding="utf-8") as handle:
        handle.write("material")
    return path


class FakeCosign:
    def __init__(self, returncode=0):
        self.returncode = returncode
        self.calls = []

    def __call__(self, argv, env):
        self.calls.append(list(argv))
        return subprocess.CompletedProcess(argv, self.returncode, "", "error verifying blob")


def request(artifact, **overrides):
    base = "https://www.python.org/ftp/python/3.12.7/Python-3.12.7.tgz"
    fields = dict(
        backend="sigstore",
        artifact_path=artifact,
        filename="Python-3.12.7.tgz",
        signature_url=base + ".sig",
        certificate_url=base + ".crt",
        identity="thomas@python.org",
        issuer=GOOGLE_ISSUER,
    )
    fields.update(overrides)
    return SignatureRequest(**fields)


@pytest.fixture
def artifact(tmp_path):
    path = tmp_path / "Python-3.12.7.tgz"
    path.write_bytes(b"tarball")
    return str(path)


class TestReleaseManagers:
    @pytest.mark.parametrize(
        "version,identity,issuer",
        [
            ("3.7.17", "nad@python.org", GITHUB_ISSUER),
            ("3.9.20", "lukasz@langa.pl", GITHUB_ISSUER),
            ("3.11.10", "pablogsal@python.org", GOOGLE_ISSUER),
            ("3.13.0", "thomas@python.org", GOOGLE_ISSUER),
            ("3.14.1", "hugo@python.org", GITHUB_ISSUER),
            ("3.16.0", "savannah@python.org", GITHUB_ISSUER),
        ],
    )
    def test_identity(self, version, identity, issuer):
        assert python_signing_identity(version) == (identity, issuer)

    def test_unknown_minor(self):
        assert python_signing_identity("3.6.15") is None
        assert python_signing_identity("2.7.18") is None

    def test_sigstore_availability_threshold(self):
        assert not python_supports_sigstore("3.10.15")
        assert python_supports_sigstore("3.11.0")
        assert python_supports_sigstore("3.12.7")


class TestSigstoreBackend:
    def test_signature_and_certificate(self, artifact):
        cosign = FakeCosign()
        backend = SigstoreBackend(runner=cosign, which=lambda _b: "/usr/local/bin/cosign")
        with patch("signatures.sigstore.fetch_material", side_effect=fake_fetch):
            result = backend.verify(request(artifact))
        argv = cosign.calls[0]
        assert argv[:2] == ["cosign", "verify-blob"]
        assert argv[argv.index("--certificate-identity") + 1] == "thomas@python.org"
        assert argv[argv.index("--certificate-oidc-issuer") + 1] == GOOGLE_ISSUER
        assert argv[argv.index("--signature") + 1].endswith("Python-3.12.7.tgz.sig")
        assert argv[argv.index("--certificate") + 1].endswith("Python-3.12.7.tgz.crt")
        assert argv[-1] == artifact
        assert "thomas@python.org" in result.detail

    def test_bundle(self, artifact):
        cosign = FakeCosign()
        backend = SigstoreBackend(runner=cosign, which=lambda _b: "/usr/local/bin/cosign")
        with patch("signatures.sigstore.fetch_material", side_effect=fake_fetch):
            backend.verify(request(artifact, bundle_url="https://x/Python-3.12.7.tgz.sigstore"))
        argv = cosign.calls[0]
        assert "--bundle" in argv
        assert "--signature" not in argv

    def test_rejected(self, artifact):
        backend = SigstoreBackend(runner=FakeCosign(returncode=1), which=lambda _b: "/usr/local/bin/cosign")
        with patch("signatures.sigstore.fetch_material", side_effect=fake_fetch):
            with pytest.raises(SignatureInvalid) as excinfo:
                backend.verify(request(artifact))
        assert excinfo.value.context["identity"] == "thomas@python.org"

    def test_not_installed(self, artifact):
        backend = SigstoreBackend(runner=FakeCosign(), which=lambda _b: None)
        with pytest.raises(NetworkUnavailable):
            backend.verify(request(artifact))

    def test_missing_identity(self, artifact):
        backend = SigstoreBackend(runner=FakeCosign(), which=lambda _b: "/usr/local/bin/cosign")
        with pytest.raises(NetworkUnavailable):
            backend.verify(request(artifact, identity=None))

    def test_material_download_failure(self, artifact):
        cosign = FakeCosign()
        backend = SigstoreBackend(runner=cosign, which=lambda _b: "/usr/local/bin/cosign")
        with patch("signatures.sigstore.fetch_material", side_effect=NetworkUnavailable("404")):
            with pytest.raises(NetworkUnavailable):
                backend.verify(request(artifact))
        assert cosign.calls == []

    def test_hung_cosign_is_unavailable(self, artifact):
        def hung(argv, env):
            raise subprocess.TimeoutExpired(argv, 60)

        backend = SigstoreBackend(runner=hung, which=lambda _b: "/usr/local/bin/cosign")
        with patch("signatures.sigstore.fetch_material", side_effect=fake_fetch):
            with pytest.raises(NetworkUnavailable) as excinfo:
                backend.verify(request(artifact))
        assert "did not finish" in excinfo.value.args[0]

    def test_settings_reach_material_downloads(self, artifact):
        settings = HttpSettings(connect=2, total=5, retries=1)
        backend = SigstoreBackend(runner=FakeCosign(), which=lambda _b: "/usr/local/bin/cosign", settings=settings)
        with patch("signatures.sigstore.fetch_material", side_effect=fake_fetch) as mock_fetch:
            backend.verify(request(artifact))
        assert all(call[0][2] is settings for call in mock_fetch.call_args_list)
