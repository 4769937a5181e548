"""Tests for ValidatorConfig loading and overrides."""

from __future__ import annotations

from pathlib import Path

import pytest

from distcheck.config import DEFAULT_FETCH_HOSTS, DEFAULT_TOOLS, ValidatorConfig
from distcheck.exceptions import DistcheckError


class TestDefaults:
    """Tests for the default configuration."""

    def test_default_tools(self) -> None:
        config = ValidatorConfig()
        assert config.tool("git") == "git"
        assert config.tools == DEFAULT_TOOLS

    def test_unknown_tool_name_passes_through(self) -> None:
        assert ValidatorConfig().tool("gzip") == "gzip"

    def test_default_hosts(self) -> None:
        assert ValidatorConfig().fetch_hosts == DEFAULT_FETCH_HOSTS


class TestExtraHosts:
    """Tests for with_extra_hosts."""

    def test_adds_hosts_lowercased(self) -> None:
        config = ValidatorConfig().with_extra_hosts(["Git.Example.com "])
        assert "git.example.com" in config.fetch_hosts
        assert DEFAULT_FETCH_HOSTS <= config.fetch_hosts

    def test_empty_returns_same_instance(self) -> None:
        config = ValidatorConfig()
        assert config.with_extra_hosts(["", "  "]) is config

    def test_original_unchanged(self) -> None:
        config = ValidatorConfig()
        config.with_extra_hosts(["git.example.com"])
        assert "git.example.com" not in config.fetch_hosts


class TestFromFile:
    """Tests for YAML config loading."""

    def test_full_file(self, tmp_path: Path) -> None:
        path = tmp_path / "distcheck.yaml"
        path.write_text(
            "fetch_hosts:\n"
            "  - git.example.com\n"
            "command_timeout: 600\n"
            "http_timeout: 5\n"
            "chunk_size: 1024\n"
            f"scratch_root: {tmp_path}\n"
            "tools:\n"
            "  git: /usr/local/bin/git\n"
        )
        config = ValidatorConfig.from_file(path)
        assert "git.example.com" in config.fetch_hosts
        assert config.command_timeout == 600.0
        assert config.http_timeout == 5.0
        assert config.chunk_size == 1024
        assert config.scratch_root == tmp_path
        assert config.tool("git") == "/usr/local/bin/git"
        assert config.tool("tar") == "tar"

    def test_empty_file_gives_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "distcheck.yaml"
        path.write_text("")
        assert ValidatorConfig.from_file(path) == ValidatorConfig()

    def test_unknown_key(self, tmp_path: Path) -> None:
        path = tmp_path / "distcheck.yaml"
        path.write_text("fetch_host: git.example.com\n")
        with pytest.raises(DistcheckError, match="Unknown config keys: fetch_host"):
            ValidatorConfig.from_file(path)

    def test_not_a_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "distcheck.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(DistcheckError, match="must be a mapping"):
            ValidatorConfig.from_file(path)

    def test_malformed_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "distcheck.yaml"
        path.write_text("tools: [unclosed\n")
        with pytest.raises(DistcheckError, match="Cannot load config"):
            ValidatorConfig.from_file(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(DistcheckError, match="Cannot load config"):
            ValidatorConfig.from_file(tmp_path / "absent.yaml")

    def test_tools_must_be_mapping(self) -> None:
        with pytest.raises(DistcheckError, match="'tools' must be a mapping"):
            ValidatorConfig.from_mapping({"tools": ["git"]})


class TestFromMappingValidation:
    """Malformed values are reported as config errors."""

    def test_scalar_fetch_hosts_rejected(self) -> None:
        with pytest.raises(DistcheckError, match="'fetch_hosts' must be a list"):
            ValidatorConfig.from_mapping({"fetch_hosts": "git.example.com"})

    def test_fetch_hosts_list(self) -> None:
        config = ValidatorConfig.from_mapping({"fetch_hosts": ["git.example.com"]})
        assert config.fetch_hosts == DEFAULT_FETCH_HOSTS | {"git.example.com"}

    @pytest.mark.parametrize("key", ["command_timeout", "http_timeout", "chunk_size"])
    def test_non_numeric_value(self, key: str) -> None:
        with pytest.raises(DistcheckError, match=f"'{key}' must be a number"):
            ValidatorConfig.from_mapping({key: "soon"})

    @pytest.mark.parametrize("key", ["command_timeout", "chunk_size"])
    def test_non_positive_value(self, key: str) -> None:
        with pytest.raises(DistcheckError, match=f"'{key}' must be positive"):
            ValidatorConfig.from_mapping({key: 0})

    def test_bad_value_in_file(self, tmp_path: Path) -> None:
        path = tmp_path / "distcheck.yaml"
        path.write_text("command_timeout: [1, 2]\n")
        with pytest.raises(DistcheckError, match="'command_timeout' must be a number"):
            ValidatorConfig.from_file(path)
