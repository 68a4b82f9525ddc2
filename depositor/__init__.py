"""
Depositor: deposit lifecycle CLI

Drives tokenized-Bitcoin deposits through funding, redemption and
liquidation from the command line.

Architecture
────────────

    ┌──────────────────────────────────────────────────────────────────┐
    │  cli.py            global flags, config, logger, exit codes       │
    │                                                                    │
    │  commands/         tokens ─▶ deferred CommandAction (no I/O)       │
    │    deposit.py      deposit new | list | <address> [subcommand]     │
    │    system.py       lot-sizes | supply | supply-cap                 │
    │                                                                    │
    │  orchestrator.py   funding, redemption, liquidation, withdraw      │
    │  query.py          deposit ownership from token transfers          │
    │  liquidation.py    reason ─▶ eligible states ─▶ remedial method    │
    │  events.py         lifecycle events, bus, flow completion          │
    │                                                                    │
    │  collaborators.py  ledger / deposit handle interfaces, connector   │
    └──────────────────────────────────────────────────────────────────┘

Copyright (c) 2026 Momentum. All rights reserved.
"""

__version__ = "0.3.0"


# Lazy imports to avoid circular dependencies
def __getattr__(name):
    """Lazy import depositor modules on first access."""

    if name in ("DepositState", "state_name", "state_by_id"):
        from depositor import states
        return getattr(states, name)

    if name in ("LiquidationReason", "LIQUIDATION_REASONS", "resolve_liquidation",
                "reason_for_key", "reason_keys"):
        from depositor import liquidation
        return getattr(liquidation, name)

    if name in ("LifecycleOrchestrator", "StateGateViolation", "FlowConflictError"):
        from depositor import orchestrator
        return getattr(orchestrator, name)

    if name in ("QueryService",):
        from depositor import query
        return getattr(query, name)

    if name in ("resolve_command", "CommandAction", "DepositCommandResolver"):
        from depositor import commands
        return getattr(commands, name)

    if name in ("DepositorCLI", "CLIError"):
        from depositor import cli
        return getattr(cli, name)

    raise AttributeError(f"module 'depositor' has no attribute '{name}'")


__all__ = [
    "__version__",
    # States
    "DepositState",
    "state_name",
    "state_by_id",
    # Liquidation
    "LiquidationReason",
    "LIQUIDATION_REASONS",
    "resolve_liquidation",
    "reason_for_key",
    "reason_keys",
    # Orchestration
    "LifecycleOrchestrator",
    "StateGateViolation",
    "FlowConflictError",
    "QueryService",
    # Commands
    "resolve_command",
    "CommandAction",
    "DepositCommandResolver",
    # CLI
    "DepositorCLI",
    "CLIError",
]
