"""
Bridges from configuration objects to kernel inputs.

The kernel never imports demand_config; this module is the only place the
two meet.
"""

from __future__ import annotations

from demand_config.schema import LifecycleConfig
from demand_kernel.domain.lifecycle import Priority
from demand_kernel.domain.policy import AutoTransitionRule, LifecyclePolicy


def build_lifecycle_policy(config: LifecycleConfig) -> LifecyclePolicy:
    return LifecyclePolicy(
        default_auto_priorities=frozenset(
            Priority(p) for p in config.auto_transition.default_priorities
        ),
        company_rules=tuple(
            AutoTransitionRule(
                company=o.company,
                priority=Priority(o.priority),
                enabled=o.enabled,
            )
            for o in config.auto_transition.overrides
        ),
        committee_threshold_percent=config.committee_threshold_percent,
        code_sequence_width=config.code_sequence_width,
        version_fingerprint=f"{config.config_id}@{config.version}:{config.checksum[:12]}",
    )
