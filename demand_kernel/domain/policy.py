"""
Lifecycle policy (``demand_kernel.domain.policy``).

Frozen, I/O-free view of the tunable lifecycle rules.  The kernel never reads
configuration files; ``demand_config`` loads YAML and bridges it into a
``LifecyclePolicy``.  ``DEFAULT_POLICY`` mirrors the shipped defaults so the
kernel is usable without any configuration.
"""

from __future__ import annotations

from dataclasses import dataclass

from demand_kernel.domain.lifecycle import Priority


@dataclass(frozen=True)
class AutoTransitionRule:
    """Per-company override of the ApprovedByPM -> InProgress cascade."""

    company: str
    priority: Priority
    enabled: bool


@dataclass(frozen=True)
class LifecyclePolicy:
    """
    Contract:
        ``auto_transition_enabled(company, priority)`` consults company rules
        first, then the default priority set.

    Guarantees:
        - ``committee_threshold_percent`` is within 0..100.
        - Only low and medium priorities can transition automatically; the
          validator refuses ApprovedByPM -> InProgress for the others.
    """

    default_auto_priorities: frozenset[Priority] = frozenset(
        {Priority.LOW, Priority.MEDIUM}
    )
    company_rules: tuple[AutoTransitionRule, ...] = ()
    committee_threshold_percent: int = 80
    code_sequence_width: int = 5
    version_fingerprint: str = "defaults"

    def __post_init__(self) -> None:
        if not 0 <= self.committee_threshold_percent <= 100:
            raise ValueError(
                "committee_threshold_percent must be within 0..100, "
                f"got {self.committee_threshold_percent}"
            )
        for priority in self.default_auto_priorities:
            if not priority.is_fast_track:
                raise ValueError(
                    f"{priority.value} demands go through committee review and "
                    "cannot transition automatically"
                )
        for rule in self.company_rules:
            if rule.enabled and not rule.priority.is_fast_track:
                raise ValueError(
                    f"auto-transition cannot be enabled for {rule.priority.value} "
                    f"demands of {rule.company}"
                )

    def auto_transition_enabled(self, company: str | None, priority: Priority) -> bool:
        for rule in self.company_rules:
            if rule.company == company and rule.priority == priority:
                return rule.enabled
        return priority in self.default_auto_priorities


DEFAULT_POLICY = LifecyclePolicy()
