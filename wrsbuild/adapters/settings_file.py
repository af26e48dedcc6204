"""Assemble :class:`BuildSettings` from a JSON file, environment and CLI flags."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError

from wrsbuild.domain.errors import SettingsError
from wrsbuild.domain.settings import BuildSettings

ENV_OVERRIDES = {
    "WRS_IMAGE_ROOT": "image_root",
    "WRS_OUTPUT_ROOT": "wrs_root",
    "WRS_MOUNT_ROOT": "mount_root",
}


def load_settings_file(path: Optional[Path]) -> Dict[str, Any]:
    """Read a JSON settings object; ``None`` means no file."""
    if path is None:
        return {}
    settings_path = Path(path).expanduser()
    try:
        with settings_path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
    except FileNotFoundError as exc:
        raise SettingsError(f"Settings file not found: {settings_path}") from exc
    except (OSError, json.JSONDecodeError) as exc:
        raise SettingsError(f"Cannot read settings file {settings_path}", str(exc)) from exc
    if not isinstance(payload, dict):
        raise SettingsError(
            f"Settings file {settings_path} must contain a JSON object",
            "Use keys such as image_root, wrs_root and mount_root.",
        )
    return payload


def resolve_settings(
    *,
    config_path: Optional[Path] = None,
    overrides: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> BuildSettings:
    """Merge defaults < settings file < environment < CLI overrides."""
    env = os.environ if environ is None else environ
    merged: Dict[str, Any] = dict(load_settings_file(config_path))
    for var, key in ENV_OVERRIDES.items():
        value = str(env.get(var) or "").strip()
        if value:
            merged[key] = value
    for key, value in (overrides or {}).items():
        if value is None or value == []:
            continue
        merged[key] = value

    try:
        return BuildSettings.model_validate(merged)
    except ValidationError as exc:
        details = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'settings'}: {error['msg']}"
            for error in exc.errors()
        )
        raise SettingsError("Invalid run settings", details) from exc


__all__ = ["ENV_OVERRIDES", "load_settings_file", "resolve_settings"]
