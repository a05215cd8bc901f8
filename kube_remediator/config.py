"""Configuration loading.

Process-level settings come from ``KUBE_REMEDIATOR_*`` environment
variables.  Each remediator additionally reads a JSON or YAML document once
at startup; a missing or unreadable file is not fatal and leaves the
defaults in place.
"""

from __future__ import annotations

import math
import os
import re
from dataclasses import replace
from typing import Any

import yaml

from kube_remediator.models.config import (
    AppConfig,
    KubernetesConfig,
    LogConfig,
    MetricsConfig,
    RemediatorConfig,
)
from kube_remediator.observability.logging import get_logger

_log = get_logger("config")

CRASH_LOOP_CONFIG_FILE = "config/crash_loop_back_off_rescheduler.json"
FAILED_POD_CONFIG_FILE = "config/failed_pod_rescheduler.json"

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ns|us|µs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"KUBE_REMEDIATOR_{key}", default)


def _env_bool(key: str, default: bool = False) -> bool:
    val = _env(key, str(default).lower())
    return val.lower() in ("true", "1", "yes")


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    val = int(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def parse_duration(value: str | int | float) -> float:
    """Parse a Go-style duration (``"1m"``, ``"1h30m"``, ``"500ms"``) into seconds.

    Bare numbers are taken as seconds.  Raises ValueError on anything else.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")
    if isinstance(value, int | float):
        return float(value)
    text = value.strip()
    if re.fullmatch(r"\d+(?:\.\d+)?", text):
        return float(text)
    if not text or _DURATION_PART.sub("", text):
        raise ValueError(f"Invalid duration: {value!r}")
    return sum(float(amount) * _DURATION_UNITS[unit] for amount, unit in _DURATION_PART.findall(text))


def _read_document(path: str) -> dict[str, Any]:
    with open(path, encoding="utf-8") as fh:
        document = yaml.safe_load(fh)
    if document is None:
        return {}
    if not isinstance(document, dict):
        raise ValueError(f"expected a mapping, got {type(document).__name__}")
    # Keys are matched case-insensitively ("failureThreshold" == "failurethreshold").
    return {str(key).lower(): value for key, value in document.items()}


def load_remediator_config(path: str, defaults: RemediatorConfig | None = None) -> RemediatorConfig:
    """Read one remediator's settings from *path*.

    Recognized keys: ``annotation``, ``failureThreshold``, ``namespace`` and
    ``interval``.  Unknown keys are ignored; invalid values keep the
    default and log a warning.
    """
    base = defaults or RemediatorConfig()
    _log.info("reading config", file=path)
    try:
        document = _read_document(path)
    except (OSError, yaml.YAMLError, ValueError) as exc:
        _log.warning("config_read_failed", file=path, error=str(exc))
        document = {}

    changes: dict[str, Any] = {}
    if "annotation" in document:
        changes["annotation"] = "" if document["annotation"] is None else str(document["annotation"])
    if "namespace" in document:
        changes["namespace"] = "" if document["namespace"] is None else str(document["namespace"])
    if "failurethreshold" in document:
        try:
            changes["failure_threshold"] = max(int(document["failurethreshold"]), 0)
        except (TypeError, ValueError):
            _log.warning("config_invalid_value", file=path, key="failureThreshold", value=document["failurethreshold"])
    if "interval" in document:
        try:
            interval = parse_duration(document["interval"])
            if not math.isfinite(interval) or interval <= 0:
                raise ValueError("interval must be a positive finite duration")
            changes["interval"] = interval
        except (TypeError, ValueError):
            _log.warning("config_invalid_value", file=path, key="interval", value=document["interval"])

    config = replace(base, **changes)
    _log.info(
        "config_loaded",
        file=path,
        annotation=config.annotation,
        failure_threshold=config.failure_threshold,
        namespace=config.namespace,
        interval=config.interval,
    )
    return config


def _validate_log_format(value: str) -> str:
    if value.lower() not in ("json", "console"):
        raise ValueError(f"Invalid log format: {value}. Must be json or console")
    return value.lower()


def load_log_config() -> LogConfig:
    return LogConfig(
        level=_validate_log_level(_env("LOG_LEVEL", "info")),
        format=_validate_log_format(_env("LOG_FORMAT", "json")),
    )


def load_config() -> AppConfig:
    """Load configuration from KUBE_REMEDIATOR_* environment variables and remediator files."""
    kubeconfig = _env("KUBECONFIG") or os.environ.get("KUBECONFIG", "")
    kubernetes = KubernetesConfig(kubeconfig=kubeconfig) if kubeconfig else KubernetesConfig()
    return AppConfig(
        crash_loop=load_remediator_config(_env("CRASH_LOOP_CONFIG", CRASH_LOOP_CONFIG_FILE)),
        failed_pod=load_remediator_config(_env("FAILED_POD_CONFIG", FAILED_POD_CONFIG_FILE)),
        kubernetes=kubernetes,
        metrics=MetricsConfig(
            enabled=_env_bool("METRICS_ENABLED", True),
            port=_env_int("METRICS_PORT", 9090, min_val=1024, max_val=65535),
        ),
        log=load_log_config(),
    )
