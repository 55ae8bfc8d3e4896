from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from config.defaults import DEFAULT_ACTIVE_DAYS


@dataclass(frozen=True, slots=True)
class AccessConfig:
    guild_id: int
    descending_roles: list[int]
    active_days: int = DEFAULT_ACTIVE_DAYS
    log_channel_id: int = 0


@dataclass(slots=True)
class FeatureConfig:
    event_channel_per_guild: dict[int, int] = field(default_factory=dict)
    active_guilds: set[int] = field(default_factory=set)
    access: dict[int, AccessConfig] = field(default_factory=dict)


def parse_id_set(raw: str | None) -> set[int]:
    if not raw:
        return set()
    out: set[int] = set()
    for tok in re.split(r"[\s,;]+", raw.strip()):
        if not tok:
            continue
        if re.fullmatch(r"\d{8,22}", tok):
            out.add(int(tok))
    return out


def _as_int(value: Any) -> int | None:
    try:
        out = int(value)
    except (TypeError, ValueError):
        return None
    return out if out > 0 else None


def _as_id_map(value: Any) -> dict[int, int]:
    if not isinstance(value, dict):
        return {}
    out: dict[int, int] = {}
    for k, v in value.items():
        key = _as_int(k)
        val = _as_int(v)
        if key is not None and val is not None:
            out[key] = val
    return out


def _as_id_set(value: Any) -> set[int]:
    if not isinstance(value, list):
        return set()
    return {i for i in (_as_int(v) for v in value) if i is not None}


def _as_access(value: Any) -> dict[int, AccessConfig]:
    if not isinstance(value, dict):
        return {}
    out: dict[int, AccessConfig] = {}
    for k, v in value.items():
        guild_id = _as_int(k)
        if guild_id is None or not isinstance(v, dict):
            continue
        roles = [r for r in (_as_int(x) for x in (v.get("descending_roles") or [])) if r is not None]
        out[guild_id] = AccessConfig(
            guild_id=guild_id,
            descending_roles=roles,
            active_days=_as_int(v.get("active_days")) or DEFAULT_ACTIVE_DAYS,
            log_channel_id=_as_int(v.get("log_channel_id")) or 0,
        )
    return out


def load_feature_config(path: str | Path | None) -> tuple[FeatureConfig, str | None]:
    """
    Returns (config, warning_message). warning_message is None on clean load.
    """
    defaults = FeatureConfig()
    if not path:
        return (defaults, "Feature config path missing; using empty defaults.")

    p = Path(path)
    if not p.exists():
        return (defaults, f"Feature config not found at {p}; using empty defaults.")

    try:
        payload = yaml.safe_load(p.read_text(encoding="utf-8"))
    except Exception as exc:
        return (defaults, f"Failed to read feature config from {p}: {exc}; using empty defaults.")

    if payload is None:
        return (defaults, None)
    if not isinstance(payload, dict):
        return (defaults, f"Invalid feature config format in {p}; using empty defaults.")

    config = FeatureConfig(
        event_channel_per_guild=_as_id_map(payload.get("event_channel_per_guild")),
        active_guilds=_as_id_set(payload.get("active_guilds")),
        access=_as_access(payload.get("access")),
    )
    return (config, None)
