import logging
from pathlib import Path

import pytest

from statement_categorizer.core import settings


def test_classifier_settings_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AUTO_APPROVE_THRESHOLD", "0.9")
    monkeypatch.setenv("MIN_TRAINING_SAMPLES", "25")
    monkeypatch.setenv("VOCABULARY_LIMIT", "not-a-number")
    monkeypatch.setenv("NEUTRAL_CONFIDENCE", "1.5")

    classifier_settings = settings.get_classifier_settings()

    assert classifier_settings.auto_approve_threshold == 0.9
    assert classifier_settings.min_training_samples == 25
    assert classifier_settings.vocabulary_limit == 100
    assert classifier_settings.neutral_confidence == 0.5


def test_bool_parsing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SEED_DEFAULT_CATEGORIES", "off")
    assert settings.get_env_bool("SEED_DEFAULT_CATEGORIES", True) is False

    monkeypatch.setenv("SEED_DEFAULT_CATEGORIES", "maybe")
    assert settings.get_env_bool("SEED_DEFAULT_CATEGORIES", True) is True


def test_database_path(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("DATA_DIR", str(tmp_path))
    monkeypatch.delenv("DATABASE_FILE", raising=False)
    assert settings.get_database_path() == str(tmp_path / "statements.db")

    monkeypatch.setenv("DATABASE_FILE", ":memory:")
    assert settings.get_database_path() == ":memory:"


def test_read_config_file(tmp_path: Path) -> None:
    config = tmp_path / "config.yaml"
    config.write_text(
        "# comment\n"
        "LOG_LEVEL: debug\n"
        "DATABASE_FILE: \"ledger.db\"  # quoted\n"
        "DATA_DIR:\n",
        encoding="utf-8",
    )

    assert settings.read_config_file(str(config)) == {
        "LOG_LEVEL": "debug",
        "DATABASE_FILE": "ledger.db",
    }
    assert settings.read_config_file(str(tmp_path / "missing.yaml")) == {}


def test_log_environment_names_config_file(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="statement_categorizer.core.settings"):
        settings.log_environment()

    assert f"config file: {settings.get_config_path()}" in caplog.text
