# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only
import json
import logging
from pathlib import Path

import pytest

from zkvote.config import (
    ElectionConfig,
    Variant,
    load_config,
    log_level_number,
    setup_logging,
)
from zkvote.errors import ConfigurationError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("ZKVOTE_ARTIFACTS_DIR", "ZKVOTE_SNARKJS", "ZKVOTE_NODE", "ZKVOTE_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)


def test_defaults():
    config = ElectionConfig(admin="admin", options_count=3)
    assert config.variant is Variant.COMMIT_REVEAL
    assert config.artifacts_dir == Path("circuits")
    assert config.snarkjs_bin == "snarkjs"
    assert config.voting_duration is None


def test_load_from_file(tmp_path):
    path = tmp_path / "election.json"
    path.write_text(
        json.dumps(
            {
                "admin": "0xabc",
                "options_count": 4,
                "variant": "open",
                "voting_duration": 3600,
                "artifacts_dir": "build/circuits",
            }
        )
    )
    config = load_config(path)
    assert config.admin == "0xabc"
    assert config.variant is Variant.OPEN
    assert config.voting_duration == 3600
    assert config.artifacts_dir == Path("build/circuits")


def test_environment_overrides_file(tmp_path, monkeypatch):
    path = tmp_path / "election.json"
    path.write_text(json.dumps({"admin": "a", "options_count": 2, "snarkjs_bin": "x"}))
    monkeypatch.setenv("ZKVOTE_SNARKJS", "/opt/snarkjs")
    monkeypatch.setenv("ZKVOTE_LOG_LEVEL", "debug")

    config = load_config(path)
    assert config.snarkjs_bin == "/opt/snarkjs"
    assert config.log_level == "debug"


def test_keyword_overrides_environment(monkeypatch):
    monkeypatch.setenv("ZKVOTE_ARTIFACTS_DIR", "/env/circuits")
    config = load_config(admin="a", options_count=2, artifacts_dir="/kw/circuits")
    assert config.artifacts_dir == Path("/kw/circuits")


def test_unknown_key():
    with pytest.raises(ConfigurationError, match="colour"):
        load_config(admin="a", options_count=2, colour="red")


def test_missing_required_key():
    with pytest.raises(ConfigurationError):
        load_config(options_count=2)


def test_file_must_hold_an_object(tmp_path):
    path = tmp_path / "election.json"
    path.write_text("[]")
    with pytest.raises(ConfigurationError):
        load_config(path)


@pytest.mark.parametrize(
    "values",
    [
        {"admin": "", "options_count": 2},
        {"admin": "a", "options_count": 0},
        {"admin": "a", "options_count": True},
        {"admin": "a", "options_count": "2"},
        {"admin": "a", "options_count": 2, "variant": "ranked"},
        {"admin": "a", "options_count": 2, "variant": "open"},
        {"admin": "a", "options_count": 2, "variant": "open", "voting_duration": -5},
        {"admin": "a", "options_count": 2, "variant": "open", "voting_duration": True},
        {"admin": "a", "options_count": 2, "log_level": "LOUD"},
    ],
)
def test_invalid_values(values):
    with pytest.raises(ConfigurationError):
        ElectionConfig(**values)


def test_setup_logging():
    logger = setup_logging("warning")
    assert logger.name == "zkvote"
    assert logging.getLogger().level == logging.WARNING
    setup_logging("INFO")


def test_log_level_number():
    assert log_level_number("debug") == logging.DEBUG
    assert log_level_number("WARNING") == logging.WARNING
    with pytest.raises(ConfigurationError):
        log_level_number("LOUD")


def test_setup_logging_rejects_unknown_level():
    with pytest.raises(ConfigurationError):
        setup_logging("LOUD")


if __name__ == "__main__":
    pytest.main()
