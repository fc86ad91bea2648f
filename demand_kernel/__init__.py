"""
Demand Kernel

Lifecycle engine for corporate work-request ("demand") records:
- Status state machine with guard rules and confirmation prompts
- Compare-and-swap status changes with an audited cascade
- Append-only event log with scope-version snapshots
- Canonical multi-level approval view rebuilt from history and live records
"""

__version__ = "0.1.0"
