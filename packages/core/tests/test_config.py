"""Tests for configuration loading."""

import pytest

from prgate_core.config import DEFAULT_CONFIG, load_config, validate_config


def test_defaults_applied_when_no_config_file(tmp_path):
    config = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    assert config["required_approvals"] == 1
    assert config["allow_self_approval"] is False
    assert config["require_squash_clean"] is True
    assert config["squash_context"] == "review/squash"
    assert config["peer_review_context"] == "review/peer"
    assert config["workspace_dir"] is None


def test_config_file_overrides_defaults(tmp_path):
    cfg = tmp_path / ".gate.yml"
    cfg.write_text("required_approvals: 2\nmerge_method: rebase\n")
    config = load_config(config_path=str(cfg))
    assert config["required_approvals"] == 2
    assert config["merge_method"] == "rebase"


def test_empty_config_file_uses_defaults(tmp_path):
    cfg = tmp_path / ".gate.yml"
    cfg.write_text("")
    config = load_config(config_path=str(cfg))
    assert config["port"] == DEFAULT_CONFIG["port"]


def test_cli_overrides_config_file(tmp_path):
    cfg = tmp_path / ".gate.yml"
    cfg.write_text("port: 9000\n")
    config = load_config(config_path=str(cfg), cli_overrides={"port": 9100})
    assert config["port"] == 9100


def test_none_cli_overrides_ignored(tmp_path):
    cfg = tmp_path / ".gate.yml"
    cfg.write_text("host: 127.0.0.1\n")
    config = load_config(config_path=str(cfg), cli_overrides={"host": None})
    assert config["host"] == "127.0.0.1"


def test_env_vars_loaded(monkeypatch, tmp_path):
    monkeypatch.setenv("GITHUB_TOKEN", "gh-token")
    monkeypatch.setenv("GITHUB_WEBHOOK_SECRET", "hook-secret")
    monkeypatch.setenv("PRGATE_PORT", "9999")
    config = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    assert config["github_token"] == "gh-token"
    assert config["webhook_secret"] == "hook-secret"
    assert config["port"] == 9999


def test_cli_port_beats_env_port(monkeypatch, tmp_path):
    monkeypatch.setenv("PRGATE_PORT", "9999")
    config = load_config(config_path=str(tmp_path / "nonexistent.yml"), cli_overrides={"port": 8081})
    assert config["port"] == 8081


def test_non_numeric_env_port_rejected_by_validation(monkeypatch, tmp_path):
    monkeypatch.setenv("PRGATE_PORT", "http")
    config = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    with pytest.raises(ValueError, match="port"):
        validate_config(config)


def test_defaults_are_not_mutated(tmp_path):
    config = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    config["required_approvals"] = 5
    assert DEFAULT_CONFIG["required_approvals"] == 1


class TestValidateConfig:
    def test_defaults_are_valid(self):
        validate_config(dict(DEFAULT_CONFIG))

    def test_unknown_merge_method(self):
        with pytest.raises(ValueError, match="merge_method"):
            validate_config({**DEFAULT_CONFIG, "merge_method": "octopus"})

    def test_negative_approvals(self):
        with pytest.raises(ValueError, match="required_approvals"):
            validate_config({**DEFAULT_CONFIG, "required_approvals": -1})

    def test_zero_timeout(self):
        with pytest.raises(ValueError, match="git_timeout"):
            validate_config({**DEFAULT_CONFIG, "git_timeout": 0})

    def test_port_out_of_range(self):
        with pytest.raises(ValueError, match="port"):
            validate_config({**DEFAULT_CONFIG, "port": 70000})
