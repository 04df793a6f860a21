from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any, TypeVar

import yaml
from pydantic import BaseModel, ValidationError

from .config_schema import AppConfig
from .errors import ConfigError

M = TypeVar("M", bound=BaseModel)


def read_yaml_mapping(path: str | Path, *, what: str, error: type[Exception]) -> dict[str, Any]:
    """
    Read a YAML file whose top level must be a mapping. An empty file reads as {}.

    Every failure (missing, unreadable, unparsable, wrong shape) raises `error`.
    """
    p = Path(path)
    if not p.is_file():
        raise error(f"{what.capitalize()} not found: {p}")

    try:
        data = yaml.safe_load(p.read_text(encoding="utf-8"))
    except OSError as e:
        raise error(f"Failed to read {what}: {p}") from e
    except yaml.YAMLError as e:
        raise error(f"Failed to parse YAML in {p}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise error(f"Top-level YAML in {p} must be a mapping/object")
    return data


def validate_model(model: type[M], data: dict[str, Any], *, what: str, error: type[Exception]) -> M:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise error(format_validation_errors(e, what)) from e


def format_validation_errors(err: ValidationError, what: str) -> str:
    lines = [f"Invalid {what}:"]
    for item in err.errors():
        loc = ".".join(str(part) for part in item.get("loc", ())) or "<root>"
        lines.append(f"- {loc}: {item.get('msg', 'invalid value')}")
    return "\n".join(lines)


def load_config(path: str | Path) -> AppConfig:
    """
    Load the site's webmention settings from YAML.

    Raises ConfigError with one `- location: message` line per problem.
    """
    data = read_yaml_mapping(path, what="config file", error=ConfigError)
    return validate_model(AppConfig, data, what=f"configuration in {path}", error=ConfigError)


def cache_path(config: AppConfig) -> Path:
    """Cache file location; relative paths resolve against the working directory."""
    return Path(config.webmentions.cache_file)


def config_sha256(config: AppConfig) -> str:
    """Stable hash of the effective settings, recorded in the run log."""
    payload = json.dumps(
        config.model_dump(mode="json"),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
