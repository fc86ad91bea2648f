"""
Configuration schema -- frozen dataclasses mirroring lifecycle.yaml.

Pure data; parsing and validation live in loader.py.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class AutoTransitionOverride:
    company: str
    priority: str
    enabled: bool


@dataclass(frozen=True)
class AutoTransitionConfig:
    default_priorities: tuple[str, ...] = ("low", "medium")
    overrides: tuple[AutoTransitionOverride, ...] = ()


@dataclass(frozen=True)
class LifecycleConfig:
    config_id: str
    version: int
    checksum: str
    companies: tuple[str, ...] = ()
    auto_transition: AutoTransitionConfig = AutoTransitionConfig()
    committee_threshold_percent: int = 80
    code_sequence_width: int = 5
