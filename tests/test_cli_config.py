"""Tests for configuration precedence and validation."""

import json

import pytest

from args import parse_args
from cli_config import build_settings, load_config_file, parse_rewrite
from constants import Constants
from errors import ConfigError


class TestDefaults:
    """Built-in defaults when nothing is configured."""

    def test_defaults(self, tmp_path):
        settings = build_settings(parse_args(["-d", str(tmp_path)]))
        assert settings.jobs == Constants.DEFAULT_JOBS
        assert settings.keep_going is False
        assert settings.outfile == "deps.nix"
        assert settings.outfile_path == str(tmp_path / "deps.nix")
        assert settings.infile_path == settings.outfile_path
        assert settings.rewrites == {}


class TestConfigFile:
    """Values from YAML/JSON files."""

    def test_default_yaml_location(self, tmp_path):
        (tmp_path / "vgo2nix.yml").write_text(
            "jobs: 4\nkeep_going: true\nrewrites:\n  golang.org/x: github.com/golang\n",
            encoding="utf-8",
        )
        settings = build_settings(parse_args(["-d", str(tmp_path)]))
        assert settings.jobs == 4
        assert settings.keep_going is True
        assert settings.rewrites == {"golang.org/x": "github.com/golang"}

    def test_explicit_json(self, tmp_path):
        cfg = tmp_path / "conf.json"
        cfg.write_text(json.dumps({"outfile": "nix/deps.nix", "fetch_submodules": True}), encoding="utf-8")
        settings = build_settings(parse_args(["-d", str(tmp_path), "-c", str(cfg)]))
        assert settings.outfile == "nix/deps.nix"
        assert settings.fetch_submodules is True

    def test_cli_overrides_file(self, tmp_path):
        (tmp_path / "vgo2nix.yaml").write_text("jobs: 4\noutfile: a.nix\n", encoding="utf-8")
        settings = build_settings(parse_args(["-d", str(tmp_path), "-j", "8", "-o", "b.nix", "-k"]))
        assert settings.jobs == 8
        assert settings.outfile == "b.nix"
        assert settings.keep_going is True

    def test_rewrite_order_cli_first(self, tmp_path):
        (tmp_path / "vgo2nix.yml").write_text(
            "rewrites:\n  a.org: b.org\n  c.org: d.org\n", encoding="utf-8"
        )
        settings = build_settings(parse_args([
            "-d", str(tmp_path), "--rewrite", "c.org=https://mirror/c", "--rewrite", "e.org=f.org",
        ]))
        assert list(settings.rewrites.items()) == [
            ("c.org", "https://mirror/c"),
            ("e.org", "f.org"),
            ("a.org", "b.org"),
        ]

    def test_invalid_type(self, tmp_path):
        (tmp_path / "vgo2nix.yml").write_text("jobs: many\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            build_settings(parse_args(["-d", str(tmp_path)]))

    def test_not_a_mapping(self, tmp_path):
        cfg = tmp_path / "c.yml"
        cfg.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_config_file(str(cfg))

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(ConfigError):
            build_settings(parse_args(["-d", str(tmp_path), "-c", str(tmp_path / "nope.yml")]))

    def test_zero_jobs_rejected(self, tmp_path):
        with pytest.raises(ConfigError):
            build_settings(parse_args(["-d", str(tmp_path), "-j", "0"]))


class TestParseRewrite:
    """PREFIX=TARGET parsing."""

    def test_valid(self):
        assert parse_rewrite("golang.org/x=github.com/golang") == ("golang.org/x", "github.com/golang")

    def test_url_target_keeps_equals(self):
        assert parse_rewrite("a.org=https://h/x?y=z") == ("a.org", "https://h/x?y=z")

    def test_invalid(self):
        with pytest.raises(ConfigError):
            parse_rewrite("no-separator")
        with pytest.raises(ConfigError):
            parse_rewrite("=target")
