"""Tests for data models: queries, registry records, taint, outcomes."""

from __future__ import annotations

import pytest

from distcheck.core.models import (
    PackageDetails,
    PackageQuery,
    Taint,
    TaintReason,
    ValidationOutcome,
)
from distcheck.exceptions import PackageNotFoundError


class TestPackageQuery:
    """Tests for PackageQuery parsing and keys."""

    def test_parse_name_only_defaults_to_latest(self) -> None:
        query = PackageQuery.parse("hoek")
        assert query == PackageQuery("hoek", "latest")

    def test_parse_name_and_version(self) -> None:
        assert PackageQuery.parse("hoek@5.0.0") == PackageQuery("hoek", "5.0.0")

    def test_parse_scoped_name(self) -> None:
        query = PackageQuery.parse("@hapi/hoek@^9.0.0")
        assert query.name == "@hapi/hoek"
        assert query.version_spec == "^9.0.0"

    def test_parse_scoped_name_without_version(self) -> None:
        assert PackageQuery.parse("@hapi/hoek") == PackageQuery("@hapi/hoek", "latest")

    def test_key(self) -> None:
        assert PackageQuery("joi", "^13").key == "joi@^13"

    def test_empty_name_rejected(self) -> None:
        with pytest.raises(ValueError, match="Bad package name"):
            PackageQuery("", "1.0.0")

    def test_empty_version_rejected(self) -> None:
        with pytest.raises(ValueError, match="Bad package version"):
            PackageQuery.parse("hoek@")


class TestPackageDetailsFromRegistry:
    """Tests for building PackageDetails from npm view records."""

    def test_full_record(self) -> None:
        record = {
            "name": "hoek",
            "version": "5.0.0",
            "gitHead": "abc123",
            "repository": {"type": "git", "url": "git://github.com/hapijs/hoek.git"},
            "dist": {
                "tarball": "https://registry.npmjs.org/hoek/-/hoek-5.0.0.tgz",
                "integrity": "sha512-AAAA",
                "shasum": "deadbeef",
            },
            "dependencies": {"boom": "7.x.x"},
        }
        details = PackageDetails.from_registry(record)
        assert details.key == "hoek@5.0.0"
        assert details.git_head == "abc123"
        assert details.repository is not None
        assert details.repository.url == "git://github.com/hapijs/hoek.git"
        assert details.tarball_url.endswith("hoek-5.0.0.tgz")
        assert details.integrity == "sha512-AAAA"
        assert details.shasum == "deadbeef"
        assert dict(details.dependencies) == {"boom": "7.x.x"}

    def test_missing_optional_fields(self) -> None:
        details = PackageDetails.from_registry({"name": "x", "version": "1.0.0"})
        assert details.repository is None
        assert details.git_head is None
        assert details.integrity is None
        assert dict(details.dependencies) == {}

    def test_string_repository_is_git(self) -> None:
        details = PackageDetails.from_registry({
            "name": "x", "version": "1.0.0",
            "repository": "https://github.com/a/x.git",
        })
        assert details.repository is not None
        assert details.repository.type == "git"

    def test_empty_record_not_found(self) -> None:
        with pytest.raises(PackageNotFoundError, match="Failed to find package"):
            PackageDetails.from_registry({})

    def test_dependencies_are_read_only(self) -> None:
        details = PackageDetails(name="x", version="1", dependencies={"a": "1"})
        with pytest.raises(TypeError):
            details.dependencies["b"] = "2"  # type: ignore[index]


class TestTaint:
    """Tests for the Taint variants."""

    def test_none_is_clean(self) -> None:
        assert Taint.none().clean

    def test_none_compares_structurally(self) -> None:
        assert Taint.none() == Taint.none()
        assert Taint.none() == Taint()
        assert Taint.sha_missing("a") != Taint.none()

    def test_sha_mismatch(self) -> None:
        taint = Taint.sha_mismatch(expected="a", found="b")
        assert not taint.clean
        assert taint.reason is TaintReason.SHA_MISMATCH
        assert taint.details() == {"expected": "a", "found": "b"}

    def test_sha_missing(self) -> None:
        taint = Taint.sha_missing(found="b")
        assert taint.reason is TaintReason.SHA_MISSING
        assert taint.details() == {"found": "b"}

    def test_tag_missing(self) -> None:
        taint = Taint.tag_missing(["v1.0.0", "1.0.0"])
        assert taint.reason is TaintReason.TAG_MISSING
        assert taint.details() == {"expected_tags": ["v1.0.0", "1.0.0"]}

    def test_unresolved_is_not_clean(self) -> None:
        assert not Taint.unresolved("a@1.0.0").clean

    def test_unresolved_carries_memo_key(self) -> None:
        taint = Taint.unresolved("a@1.0.0")
        assert taint.reason is TaintReason.PENDING
        assert taint.details() == {"expected": "a@1.0.0"}


class TestValidationOutcome:
    """Tests for outcome validity and cleanliness."""

    def test_default_is_clean(self) -> None:
        outcome = ValidationOutcome(package="x", version="1")
        assert outcome.valid
        assert outcome.clean

    def test_tainted_is_valid_but_not_clean(self) -> None:
        outcome = ValidationOutcome(
            package="x", version="1", taint=Taint.sha_missing("abc")
        )
        assert outcome.valid
        assert not outcome.clean

    def test_diff_makes_invalid_regardless_of_taint(self) -> None:
        outcome = ValidationOutcome(package="x", version="1", diff="+extra")
        assert not outcome.valid
        assert not outcome.clean

    def test_as_dict(self) -> None:
        outcome = ValidationOutcome(
            package="x", version="1", taint=Taint.sha_mismatch("a", "b")
        )
        data = outcome.as_dict()
        assert data["clean"] is False
        assert data["taint"] == {"reason": "sha-mismatch", "expected": "a", "found": "b"}
        assert data["diff"] is None
