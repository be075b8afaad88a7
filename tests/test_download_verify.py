"""Tests for download_and_verify."""

import hashlib
from unittest.mock import patch

import pytest

from common.errors import InvalidChecksumFormat, NetworkUnavailable
from constants import Constants
from verification.download import download_and_verify

PAYLOAD = b"terraform zip"


def writer(payload=PAYLOAD):
    def _download(url, destination, **_kwargs):
        with open(destination, "wb") as handle:
            handle.write(payload)
        return destination
    return _download


class TestDownloadAndVerify:
    @patch("verification.download.download_file")
    def test_sha256_success(self, mock_download, tmp_path):
        mock_download.side_effect = writer()
        dest = tmp_path / "terraform.zip"
        assert download_and_verify("https://x/terraform.zip", hashlib.sha256(PAYLOAD).hexdigest(), str(dest))
        assert dest.read_bytes() == PAYLOAD
        assert not (tmp_path / "terraform.zip.tmp").exists()
        assert mock_download.call_args[0][1] == str(dest) + ".tmp"
        assert mock_download.call_args[1]["max_seconds"] == Constants.DOWNLOAD_TIMEOUT

    @patch("verification.download.download_file")
    def test_sha512_by_length(self, mock_download, tmp_path):
        mock_download.side_effect = writer()
        dest = tmp_path / "terraform.zip"
        assert download_and_verify("https://x/terraform.zip", hashlib.sha512(PAYLOAD).hexdigest(), str(dest))

    @patch("verification.download.download_file")
    def test_mismatch_removes_temp(self, mock_download, tmp_path):
        mock_download.side_effect = writer(b"tampered")
        dest = tmp_path / "terraform.zip"
        assert not download_and_verify("https://x/terraform.zip", hashlib.sha256(PAYLOAD).hexdigest(), str(dest))
        assert not dest.exists()
        assert not (tmp_path / "terraform.zip.tmp").exists()

    @patch("verification.download.download_file")
    def test_network_failure(self, mock_download, tmp_path):
        mock_download.side_effect = NetworkUnavailable("timeout")
        assert not download_and_verify("https://x/a", "a" * 64, str(tmp_path / "a"))

    def test_bad_digest(self, tmp_path):
        with pytest.raises(InvalidChecksumFormat):
            download_and_verify("https://x/a", "123", str(tmp_path / "a"))
