"""Tests for version specifier classification and ecosystem names."""

import pytest

from common.errors import InvalidVersionSpecifier
from versioning.models import Ecosystem, SpecKind, normalize_ecosystem, to_ecosystem
from versioning.parser import parse_version_spec


class TestParseVersionSpec:
    @pytest.mark.parametrize(
        "raw,kind",
        [
            ("3.12.7", SpecKind.EXACT),
            ("3.12", SpecKind.MAJOR_MINOR),
            ("20", SpecKind.MAJOR),
            (" 1.23 ", SpecKind.MAJOR_MINOR),
        ],
    )
    def test_kinds(self, raw, kind):
        assert parse_version_spec(raw).kind is kind

    def test_leading_v_is_tolerated(self):
        spec = parse_version_spec("v20")
        assert spec.raw == "20"
        assert spec.major == 20

    @pytest.mark.parametrize("raw", ["", "latest", "1.2.3.4", "^1.2", "3.12.x", "1.2.3-rc1"])
    def test_rejects_other_shapes(self, raw):
        with pytest.raises(InvalidVersionSpecifier) as excinfo:
            parse_version_spec(raw)
        assert excinfo.value.code == "E_INVALID_VERSION_SPECIFIER"

    def test_spec_is_immutable(self):
        spec = parse_version_spec("3.12")
        with pytest.raises(Exception):
            spec.raw = "3.13"


class TestEcosystemNames:
    def test_aliases(self):
        assert normalize_ecosystem("node") == "nodejs"
        assert normalize_ecosystem("Go") == "golang"
        assert to_ecosystem("go") is Ecosystem.GOLANG

    def test_unknown_names_are_tools(self):
        assert normalize_ecosystem("Helm") == "helm"
        assert to_ecosystem("helm") is None
