"""Capture configuration.

Settings come from three layers, later ones winning:

1. built-in defaults (`CaptureConfig()`),
2. an optional YAML/JSON file validated against
   `schemas/capture_config.schema.json`,
3. `XCR_*` environment variables.

CLI flags are applied on top by the callers.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields, replace
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from jsonschema import Draft202012Validator


class ConfigValidationError(RuntimeError):
    pass


@dataclass(frozen=True)
class CaptureConfig:
    device: str = "iPhone 16"
    os_version: Optional[str] = None
    udid: Optional[str] = None
    interval_s: float = 1.0
    output_dir: str = "screenshots"
    xcrun_path: str = "xcrun"
    timeout_s: Optional[float] = None
    prefix: str = "auto"

    def to_json(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def _non_negative_float(raw: str) -> float:
    v = float(raw)
    if v < 0:
        raise ValueError(raw)
    return v


def _positive_float(raw: str) -> float:
    v = float(raw)
    if v <= 0:
        raise ValueError(raw)
    return v


_ENV_OVERRIDES = {
    "XCR_SIM_DEVICE": ("device", str),
    "XCR_SIM_OS_VERSION": ("os_version", str),
    "XCR_SIM_UDID": ("udid", str),
    "XCR_CAPTURE_INTERVAL_S": ("interval_s", _non_negative_float),
    "XCR_XCRUN_PATH": ("xcrun_path", str),
    "XCR_TIMEOUT_S": ("timeout_s", _positive_float),
}


def _schema_path() -> Path:
    return Path(__file__).resolve().parent / "schemas" / "capture_config.schema.json"


@lru_cache(maxsize=1)
def _load_schema() -> Dict[str, Any]:
    schema_path = _schema_path()
    data = json.loads(schema_path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ConfigValidationError(f"schema must be an object: {schema_path}")
    Draft202012Validator.check_schema(data)
    return data


def load_yaml_or_json(path: Path) -> Dict[str, Any]:
    """Load a YAML/JSON file whose top level must be an object."""

    if not path.exists():
        raise FileNotFoundError(path)

    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            raise ConfigValidationError(f"invalid YAML: {path} ({e})") from e
    elif suffix == ".json":
        data = json.loads(path.read_text(encoding="utf-8"))
    else:
        raise ValueError(f"Unsupported config file extension: {path}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigValidationError(f"Top-level config must be an object: {path}")
    return data


def validate_config(obj: Mapping[str, Any], *, where: str) -> None:
    validator = Draft202012Validator(_load_schema())
    errors = sorted(validator.iter_errors(dict(obj)), key=lambda e: list(e.path))
    if not errors:
        return
    msgs = []
    for e in errors[:20]:
        loc = "/".join(str(p) for p in e.path)
        suffix = f":{loc}" if loc else ""
        msgs.append(f"- {where}{suffix}: {e.message}")
    if len(errors) > 20:
        msgs.append(f"... ({len(errors)-20} more)")
    raise ConfigValidationError("\n".join(msgs))


def env_value(var: str, environ: Optional[Mapping[str, str]] = None) -> Any:
    """Converted value of one `XCR_*` variable, or None when unset/empty."""

    env = os.environ if environ is None else environ
    _, conv = _ENV_OVERRIDES[var]
    raw = env.get(var)
    if raw is None or raw == "":
        return None
    try:
        return conv(raw)
    except ValueError as e:
        raise ConfigValidationError(f"invalid value for ${var}: {raw!r}") from e


def apply_env(cfg: CaptureConfig, environ: Optional[Mapping[str, str]] = None) -> CaptureConfig:
    updates: Dict[str, Any] = {}
    for var, (field_name, _) in _ENV_OVERRIDES.items():
        value = env_value(var, environ)
        if value is not None:
            updates[field_name] = value
    return replace(cfg, **updates) if updates else cfg


def load_capture_config(
    path: Optional[Path] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> CaptureConfig:
    cfg = CaptureConfig()
    if path is not None:
        data = load_yaml_or_json(Path(path))
        validate_config(data, where=str(path))
        cfg = replace(cfg, **data)
    return apply_env(cfg, environ)
