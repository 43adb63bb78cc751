from __future__ import annotations

from pathlib import Path

import pytest

from metricscope.config import AppConfig, load_app_config
from metricscope.contracts.error import BadInputError


def test_defaults() -> None:
    config = load_app_config(None)

    assert config.chart.duration_seconds == 300.0
    assert config.chart.clock == "auto"
    assert config.chart.tzinfo() is None
    assert config.exemplars.poll_interval == 0.5
    assert config.logging.level == "INFO"
    assert config.logging.json is False


def test_load_from_toml(tmp_path: Path) -> None:
    path = tmp_path / "metricscope.toml"
    path.write_text(
        """
[chart]
duration_seconds = 60
clock = "12h"
timezone = "UTC"
max_decimal_places = 1

[exemplars]
poll_interval = 0.2

[logging]
json = "yes"
file = "dash.log"
level = "debug"
""",
        encoding="utf-8",
    )

    config = AppConfig.load(path)

    assert config.chart.duration_seconds == 60
    assert config.chart.clock == "12h"
    assert config.chart.tzinfo() is not None
    assert config.chart.max_decimal_places == 1
    assert config.exemplars.poll_interval == 0.2
    assert config.logging.json is True
    assert config.logging.file == "dash.log"
    assert config.logging.level == "DEBUG"


def test_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("METRICSCOPE_DURATION_SECONDS", "120")
    monkeypatch.setenv("METRICSCOPE_CLOCK", "24h")
    monkeypatch.setenv("METRICSCOPE_POLL_INTERVAL", "1.5")
    monkeypatch.setenv("METRICSCOPE_LOG_JSON", "off")
    monkeypatch.setenv("METRICSCOPE_LOG_LEVEL", "warning")

    config = load_app_config(None)

    assert config.chart.duration_seconds == 120
    assert config.chart.clock == "24h"
    assert config.exemplars.poll_interval == 1.5
    assert config.logging.json is False
    assert config.logging.level == "WARNING"


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("METRICSCOPE_DURATION_SECONDS", "soon"),
        ("METRICSCOPE_DURATION_SECONDS", "0"),
        ("METRICSCOPE_CLOCK", "36h"),
        ("METRICSCOPE_TIMEZONE", "Mars/Olympus_Mons"),
        ("METRICSCOPE_MAX_DECIMALS", "20"),
        ("METRICSCOPE_POLL_INTERVAL", "-1"),
        ("METRICSCOPE_LOG_JSON", "maybe"),
        ("METRICSCOPE_LOG_LEVEL", "LOUD"),
    ],
)
def test_invalid_env_override(monkeypatch: pytest.MonkeyPatch, name: str, value: str) -> None:
    monkeypatch.setenv(name, value)
    with pytest.raises(BadInputError):
        load_app_config(None)


def test_unknown_keys_are_rejected() -> None:
    with pytest.raises(BadInputError):
        AppConfig.from_dict({"chart": {"duration": 5}})
    with pytest.raises(BadInputError):
        AppConfig.from_dict({"logging": {"colour": True}})
    with pytest.raises(BadInputError):
        AppConfig.from_dict({"exemplars": 3})


def test_missing_and_malformed_files(tmp_path: Path) -> None:
    with pytest.raises(BadInputError):
        AppConfig.load(tmp_path / "missing.toml")
    broken = tmp_path / "broken.toml"
    broken.write_text("[chart\n", encoding="utf-8")
    with pytest.raises(BadInputError):
        AppConfig.load(broken)
