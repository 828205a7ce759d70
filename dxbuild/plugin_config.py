"""The `[plugin]` section of the project config."""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from typing import Any


@dataclass
class PluginConfig:
    available: bool = True
    loader: list[str] = field(default_factory=list)
    config_info: dict[str, dict[str, Any]] = field(default_factory=dict)


def convert_toml_value(value: Any) -> Any:
    """Turn a parsed TOML value into plain data, rendering dates and times as text."""
    if isinstance(value, datetime.datetime):
        text = value.isoformat()
        if value.tzinfo is not None and value.utcoffset() == datetime.timedelta(0):
            text = text.removesuffix("+00:00") + "Z"
        return text
    if isinstance(value, (datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, list):
        return [convert_toml_value(item) for item in value]
    if isinstance(value, dict):
        return {key: convert_toml_value(item) for key, item in value.items()}
    return value


def plugin_config_from_value(value: Any) -> PluginConfig:
    """Read the plugin settings; anything but a table disables plugins."""
    if not isinstance(value, dict):
        return PluginConfig(available=False)

    available = value.get("available", True)
    if not isinstance(available, bool):
        available = True

    origin = value.get("loader")
    loader = (
        [item if isinstance(item, str) else "" for item in origin]
        if isinstance(origin, list)
        else []
    )

    config_info = {
        name: {item: convert_toml_value(info) for item, info in data.items()}
        for name, data in value.items()
        if name not in ("available", "loader") and isinstance(data, dict)
    }
    return PluginConfig(available=available, loader=loader, config_info=config_info)