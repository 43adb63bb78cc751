"""Typed configuration loader for metricscope charts."""

from __future__ import annotations

import os
import tomllib
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import tzinfo
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .contracts.error import BadInputError

_CLOCK_CHOICES = {"auto", "12h", "24h"}
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


def _coerce_bool(value: Any, label: str) -> bool:
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in _TRUTHY:
            return True
        if normalized in _FALSY:
            return False
        raise BadInputError(f"{label} must be boolean")
    return bool(value)


@dataclass
class ChartPolicy:
    duration_seconds: float = 300.0
    clock: str = "auto"
    timezone: str = "local"
    max_decimal_places: int = 3

    def validate(self) -> None:
        if self.duration_seconds <= 0:
            raise BadInputError("chart.duration_seconds must be > 0")
        if self.clock not in _CLOCK_CHOICES:
            raise BadInputError("chart.clock must be one of 'auto', '12h', '24h'")
        if not 0 <= self.max_decimal_places <= 12:
            raise BadInputError("chart.max_decimal_places must be within [0, 12]")
        self.tzinfo()

    def tzinfo(self) -> tzinfo | None:
        """Return the configured zone, or ``None`` for the process-local zone."""

        if self.timezone.strip().lower() in {"", "local"}:
            return None
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise BadInputError(f"chart.timezone is not a known zone: {self.timezone!r}") from exc


@dataclass
class ExemplarPolicy:
    poll_interval: float = 0.5

    def validate(self) -> None:
        if self.poll_interval <= 0:
            raise BadInputError("exemplars.poll_interval must be > 0")


@dataclass
class LoggingPolicy:
    json: bool = False
    file: str | None = None
    level: str = "INFO"

    def validate(self) -> None:
        if self.level.upper() not in _LOG_LEVELS:
            raise BadInputError(f"logging.level must be one of {sorted(_LOG_LEVELS)}")
        self.level = self.level.upper()


@dataclass
class AppConfig:
    chart: ChartPolicy = field(default_factory=ChartPolicy)
    exemplars: ExemplarPolicy = field(default_factory=ExemplarPolicy)
    logging: LoggingPolicy = field(default_factory=LoggingPolicy)

    @classmethod
    def load(cls, path: Path | None) -> AppConfig:
        if path is None:
            cfg = cls()
        else:
            try:
                data = tomllib.loads(path.read_text(encoding="utf-8"))
            except FileNotFoundError as exc:
                raise BadInputError(f"Config file not found: {path}") from exc
            except tomllib.TOMLDecodeError as exc:
                raise BadInputError(f"Invalid TOML: {exc}") from exc
            cfg = cls.from_dict(data)
        cfg.apply_env_overrides(os.environ)
        cfg.validate()
        return cfg

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AppConfig:
        sections: dict[str, dict[str, Any]] = {}
        for name in ("chart", "exemplars", "logging"):
            section = data.get(name, {})
            if not isinstance(section, dict):
                raise BadInputError(f"[{name}] section must be a table")
            sections[name] = section

        try:
            chart = ChartPolicy(**sections["chart"])
            exemplars = ExemplarPolicy(**sections["exemplars"])
        except TypeError as exc:
            raise BadInputError(f"Unknown config key: {exc}") from exc

        logging_data = dict(sections["logging"])
        logging_kwargs: dict[str, Any] = {}
        if "json" in logging_data:
            logging_kwargs["json"] = _coerce_bool(logging_data.pop("json"), "logging.json")
        if "file" in logging_data:
            raw_file = logging_data.pop("file")
            logging_kwargs["file"] = str(raw_file) if raw_file else None
        if "level" in logging_data:
            logging_kwargs["level"] = str(logging_data.pop("level"))
        if logging_data:
            raise BadInputError(f"Unknown [logging] keys: {sorted(logging_data)}")

        return cls(chart=chart, exemplars=exemplars, logging=LoggingPolicy(**logging_kwargs))

    def apply_env_overrides(self, env: Mapping[str, str]) -> None:
        chart_mapping: dict[str, tuple[str, Callable[[str], Any]]] = {
            "METRICSCOPE_DURATION_SECONDS": ("duration_seconds", float),
            "METRICSCOPE_CLOCK": ("clock", str),
            "METRICSCOPE_TIMEZONE": ("timezone", str),
            "METRICSCOPE_MAX_DECIMALS": ("max_decimal_places", int),
        }
        for key, (attr, caster) in chart_mapping.items():
            raw_value = env.get(key)
            if raw_value is None:
                continue
            try:
                value = caster(raw_value)
            except ValueError as exc:
                raise BadInputError(f"Invalid env override {key}={raw_value!r}") from exc
            setattr(self.chart, attr, value)

        raw_interval = env.get("METRICSCOPE_POLL_INTERVAL")
        if raw_interval is not None:
            try:
                self.exemplars.poll_interval = float(raw_interval)
            except ValueError as exc:
                raise BadInputError(
                    f"Invalid env override METRICSCOPE_POLL_INTERVAL={raw_interval!r}"
                ) from exc

        raw_json = env.get("METRICSCOPE_LOG_JSON")
        if raw_json is not None:
            try:
                self.logging.json = _coerce_bool(raw_json, "METRICSCOPE_LOG_JSON")
            except BadInputError as exc:
                raise BadInputError(
                    f"Invalid env override METRICSCOPE_LOG_JSON={raw_json!r}"
                ) from exc
        raw_file = env.get("METRICSCOPE_LOG_FILE")
        if raw_file is not None:
            self.logging.file = raw_file or None
        raw_level = env.get("METRICSCOPE_LOG_LEVEL")
        if raw_level is not None:
            self.logging.level = raw_level

    def validate(self) -> None:
        self.chart.validate()
        self.exemplars.validate()
        self.logging.validate()


DEFAULT_CONFIG = AppConfig()


def load_app_config(path: str | None) -> AppConfig:
    config_path = Path(path) if path else None
    return AppConfig.load(config_path)
