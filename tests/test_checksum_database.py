"""Tests for the pinned checksum database."""

import json

import pytest
import yaml

from checksums.database import ChecksumDatabase, is_sentinel
from common.errors import ConfigError, InvalidChecksumFormat
from constants import Category

SHA256 = "a" * 64
SHA512 = "b" * 128


def write_db(path, languages=None, tools=None):
    path.write_text(json.dumps({
        "metadata": {"generated": "2024-01-01T00:00:00Z"},
        "languages": languages or {},
        "tools": tools or {},
    }))
    return str(path)


class TestLookup:
    def test_pinned_sha256(self, tmp_path):
        db = ChecksumDatabase(write_db(tmp_path / "c.json", languages={
            "python": {"versions": {"3.12.7": {"sha256": SHA256.upper(), "url": "https://x/Python-3.12.7.tgz",
                                               "added": "2024-10-02"}}},
        }))
        record = db.lookup(Category.LANGUAGE, "python", "3.12.7")
        assert record.digest == SHA256
        assert record.algorithm == "sha256"
        assert record.added == "2024-10-02"

    def test_sha512(self, tmp_path):
        db = ChecksumDatabase(write_db(tmp_path / "c.json", tools={
            "kubectl": {"versions": {"1.31.2": {"sha512": SHA512}}},
        }))
        assert db.lookup(Category.TOOL, "kubectl", "1.31.2").algorithm == "sha512"

    def test_alias_name(self, tmp_path):
        db = ChecksumDatabase(write_db(tmp_path / "c.json", languages={
            "nodejs": {"versions": {"20.18.0": {"sha256": SHA256}}},
        }))
        assert db.lookup(Category.LANGUAGE, "node", "20.18.0") is not None

    @pytest.mark.parametrize(
        "value",
        ["placeholder_to_be_added", "placeholder_actual_checksum_needed", "MANUAL_VERIFICATION_NEEDED", "", None],
    )
    def test_sentinels_are_absent(self, tmp_path, value):
        db = ChecksumDatabase(write_db(tmp_path / "c.json", languages={
            "ruby": {"versions": {"3.3.6": {"sha256": value}}},
        }))
        assert db.lookup(Category.LANGUAGE, "ruby", "3.3.6") is None

    def test_category_sections_are_separate(self, tmp_path):
        db = ChecksumDatabase(write_db(tmp_path / "c.json", tools={
            "terraform": {"versions": {"1.9.8": {"sha256": SHA256}}},
        }))
        assert db.lookup(Category.LANGUAGE, "terraform", "1.9.8") is None

    def test_malformed_digest(self, tmp_path):
        db = ChecksumDatabase(write_db(tmp_path / "c.json", languages={
            "golang": {"versions": {"1.23.4": {"sha256": "abc123"}}},
        }))
        with pytest.raises(InvalidChecksumFormat):
            db.lookup(Category.LANGUAGE, "golang", "1.23.4")

    def test_missing_file_is_empty(self, tmp_path):
        db = ChecksumDatabase(str(tmp_path / "absent.json"))
        assert db.lookup(Category.LANGUAGE, "python", "3.12.7") is None

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "c.json"
        path.write_text("{not json")
        with pytest.raises(ConfigError):
            ChecksumDatabase(str(path)).lookup(Category.LANGUAGE, "python", "3.12.7")

    def test_yaml_database(self, tmp_path):
        path = tmp_path / "checksums.yaml"
        path.write_text(yaml.safe_dump({
            "languages": {"java": {"versions": {"21.0.5": {"sha256": SHA256}}}},
        }))
        db = ChecksumDatabase(str(path))
        assert db.lookup(Category.LANGUAGE, "java", "21.0.5").digest == SHA256


class TestPinAndSave:
    def test_round_trip_json(self, tmp_path):
        path = write_db(tmp_path / "c.json")
        db = ChecksumDatabase(path)
        db.pin(Category.TOOL, "helm", "3.16.2", SHA256, url="https://get.helm.sh/helm.tar.gz")
        db.save()

        data = json.loads((tmp_path / "c.json").read_text())
        entry = data["tools"]["helm"]["versions"]["3.16.2"]
        assert entry["sha256"] == SHA256
        assert entry["url"] == "https://get.helm.sh/helm.tar.gz"
        assert "added" in entry
        assert data["metadata"]["generated"] != "2024-01-01T00:00:00Z"
        assert ChecksumDatabase(path).lookup(Category.TOOL, "helm", "3.16.2").digest == SHA256
        assert list(tmp_path.iterdir()) == [tmp_path / "c.json"]

    def test_save_creates_file(self, tmp_path):
        path = tmp_path / "nested" / "c.yml"
        db = ChecksumDatabase(str(path))
        db.pin(Category.LANGUAGE, "go", "1.23.4", SHA512)
        db.save()
        data = yaml.safe_load(path.read_text())
        assert data["languages"]["golang"]["versions"]["1.23.4"]["sha512"] == SHA512

    def test_pin_rejects_bad_digest(self, tmp_path):
        db = ChecksumDatabase(str(tmp_path / "c.json"))
        with pytest.raises(InvalidChecksumFormat):
            db.pin(Category.TOOL, "helm", "3.16.2", "not-a-digest")


def test_is_sentinel():
    assert is_sentinel(None)
    assert is_sentinel(" MANUAL_VERIFICATION_NEEDED ")
    assert not is_sentinel(SHA256)
