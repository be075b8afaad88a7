"""End-to-end tests for the vergate command line."""

import hashlib
import json
from unittest.mock import patch

import pytest

import vergate
from constants import ExitCodes

PAYLOAD = b"helm release"
DIGEST = hashlib.sha256(PAYLOAD).hexdigest()


def run(argv):
    with pytest.raises(SystemExit) as excinfo:
        vergate.main(argv)
    return excinfo.value.code


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("REQUIRE_VERIFIED_DOWNLOADS", "PRODUCTION_MODE", "VERGATE_CHECKSUMS_DB", "VERGATE_KEYRING_DIR"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def artifact(tmp_path):
    path = tmp_path / "helm.tar.gz"
    path.write_bytes(PAYLOAD)
    return str(path)


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "checksums.json")


class TestResolve:
    def test_exact(self, capsys):
        assert run(["resolve", "python", "3.12.7"]) == ExitCodes.SUCCESS.value
        assert capsys.readouterr().out.strip() == "3.12.7"

    @patch("versioning.resolvers.json_index.get_json")
    def test_partial(self, mock_get_json, capsys):
        mock_get_json.return_value = (200, {}, [{"version": "v20.9.0"}, {"version": "v20.18.0"}, {"version": "v22.1.0"}])
        assert run(["resolve", "node", "20"]) == ExitCodes.SUCCESS.value
        assert capsys.readouterr().out.strip() == "20.18.0"

    @patch("versioning.resolvers.json_index.get_json")
    def test_network_unavailable(self, mock_get_json):
        mock_get_json.return_value = (0, {}, None)
        assert run(["resolve", "nodejs", "20"]) == ExitCodes.CONNECTION_ERROR.value

    def test_invalid_specifier(self):
        assert run(["resolve", "python", "latest"]) == ExitCodes.VERIFICATION_FAILED.value


class TestVerifyAndPin:
    def test_tofu_then_pin_then_verified(self, artifact, db_path, capsys):
        base = ["--checksums-db", db_path]
        verify = base + ["verify", "-n", "helm", "-v", "3.16.2", "-f", artifact, "-c", "tool"]

        assert run(verify) == ExitCodes.UNVERIFIED.value
        assert "verified_with_warning" in capsys.readouterr().out

        assert run(base + ["pin", "-n", "helm", "-v", "3.16.2", "-f", artifact, "-c", "tool"]) == 0
        data = json.loads(open(db_path, encoding="utf-8").read())
        assert data["tools"]["helm"]["versions"]["3.16.2"]["sha256"] == DIGEST

        assert run(verify) == ExitCodes.SUCCESS.value
        assert "Tier 2" in capsys.readouterr().out

    def test_require_verified(self, artifact, db_path):
        argv = ["--checksums-db", db_path, "--require-verified",
                "verify", "-n", "helm", "-v", "3.16.2", "-f", artifact, "-c", "tool"]
        assert run(argv) == ExitCodes.VERIFICATION_FAILED.value

    def test_production_mode_env(self, artifact, db_path, monkeypatch):
        monkeypatch.setenv("PRODUCTION_MODE", "true")
        argv = ["--checksums-db", db_path, "verify", "-n", "helm", "-v", "3.16.2", "-f", artifact, "-c", "tool"]
        assert run(argv) == ExitCodes.VERIFICATION_FAILED.value

    def test_tampered_artifact(self, artifact, db_path):
        base = ["--checksums-db", db_path]
        assert run(base + ["pin", "-n", "helm", "-v", "3.16.2", "-d", "0" * 64, "-c", "tool"]) == 0
        verify = base + ["verify", "-n", "helm", "-v", "3.16.2", "-f", artifact, "-c", "tool"]
        assert run(verify) == ExitCodes.VERIFICATION_FAILED.value

    def test_missing_artifact(self, tmp_path, db_path):
        argv = ["--checksums-db", db_path, "verify", "-n", "helm", "-v", "3.16.2", "-f", str(tmp_path / "nope")]
        assert run(argv) == ExitCodes.FILE_ERROR.value

    def test_pin_bad_digest(self, db_path):
        argv = ["--checksums-db", db_path, "pin", "-n", "helm", "-v", "3.16.2", "-d", "abc", "-c", "tool"]
        assert run(argv) == ExitCodes.VERIFICATION_FAILED.value
