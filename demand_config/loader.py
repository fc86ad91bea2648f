"""
YAML loader for lifecycle configuration.

Responsibility:
    Read lifecycle.yaml with ``yaml.safe_load``, validate every value and
    build a frozen ``LifecycleConfig`` with a SHA-256 checksum of the
    canonical content.

Failure modes:
    - FileNotFoundError: the file does not exist.
    - yaml.YAMLError: invalid YAML.
    - ValueError: structurally valid YAML with invalid values.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from demand_config.schema import (
    AutoTransitionConfig,
    AutoTransitionOverride,
    LifecycleConfig,
)

VALID_PRIORITIES = ("low", "medium", "high", "critical")
# High and critical demands always go through committee review.
AUTO_TRANSITION_PRIORITIES = ("low", "medium")


def load_yaml_file(path: Path) -> dict[str, Any]:
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _priority(value: Any, where: str) -> str:
    text = str(value).strip().lower()
    if text not in VALID_PRIORITIES:
        raise ValueError(
            f"{where}: unknown priority {value!r} (expected one of {', '.join(VALID_PRIORITIES)})"
        )
    return text


def _auto_priority(value: Any, where: str) -> str:
    text = _priority(value, where)
    if text not in AUTO_TRANSITION_PRIORITIES:
        raise ValueError(
            f"{where}: auto-transition cannot be enabled for {text} priority"
        )
    return text


def _int_in_range(value: Any, low: int, high: int, where: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{where}: expected an integer, got {value!r}")
    if not low <= value <= high:
        raise ValueError(f"{where}: {value} is outside {low}..{high}")
    return value


def checksum(data: dict[str, Any]) -> str:
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def parse_lifecycle_config(data: dict[str, Any]) -> LifecycleConfig:
    """Validate raw YAML content and build the schema object."""
    companies = tuple(str(c).strip().upper() for c in data.get("companies") or ())

    auto = data.get("auto_transition") or {}
    defaults = tuple(
        _auto_priority(p, "auto_transition.default_priorities")
        for p in auto.get("default_priorities", ("low", "medium"))
    )
    overrides = []
    for index, raw in enumerate(auto.get("overrides") or ()):
        where = f"auto_transition.overrides[{index}]"
        if not isinstance(raw, dict) or "company" not in raw or "priority" not in raw:
            raise ValueError(f"{where}: needs 'company' and 'priority'")
        company = str(raw["company"]).strip().upper()
        if companies and company not in companies:
            raise ValueError(f"{where}: company {company!r} is not declared")
        enabled = bool(raw.get("enabled", True))
        priority = (
            _auto_priority(raw["priority"], where) if enabled
            else _priority(raw["priority"], where)
        )
        overrides.append(
            AutoTransitionOverride(company=company, priority=priority, enabled=enabled)
        )

    committee = data.get("committee") or {}
    threshold = _int_in_range(
        committee.get("approval_threshold_percent", 80), 0, 100,
        "committee.approval_threshold_percent",
    )
    codes = data.get("codes") or {}
    width = _int_in_range(codes.get("sequence_width", 5), 1, 12, "codes.sequence_width")

    return LifecycleConfig(
        config_id=str(data.get("config_id", "demand-lifecycle")),
        version=_int_in_range(data.get("version", 1), 1, 10**6, "version"),
        checksum=checksum(data),
        companies=companies,
        auto_transition=AutoTransitionConfig(
            default_priorities=defaults,
            overrides=tuple(overrides),
        ),
        committee_threshold_percent=threshold,
        code_sequence_width=width,
    )


def load_lifecycle_config(path: Path) -> LifecycleConfig:
    return parse_lifecycle_config(load_yaml_file(path))
