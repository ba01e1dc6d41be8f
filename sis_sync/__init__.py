"""
SIS sync package.

Reconciles a normalized local student/contact dataset against the SIS and
reports what would change. ``init_sync`` wires configuration state and the CLI
into a Flask app.
"""

from __future__ import annotations

from flask import Flask

from .adapters.powerschool import check_sis_adapter_readiness
from .cli import get_disabled_sync_group, is_sync_enabled, sync_cli
from .metrics import record_sync_status

SYNC_EXTENSION_KEY = "sis_sync"

__all__ = ["SYNC_EXTENSION_KEY", "get_sync_state", "init_sync"]


def _ensure_extension_state(app: Flask) -> dict:
    return app.extensions.setdefault(
        SYNC_EXTENSION_KEY,
        {
            "enabled": False,
            "adapter_readiness": {},
        },
    )


def _set_cli(app: Flask, enabled: bool) -> None:
    """Register the appropriate CLI group based on flag state."""
    command_name = sync_cli.name
    if command_name in app.cli.commands:
        app.cli.commands.pop(command_name)

    if enabled:
        app.cli.add_command(sync_cli)
    else:
        app.cli.add_command(get_disabled_sync_group())


def init_sync(app: Flask) -> None:
    """
    Record sync state inside ``app.extensions['sis_sync']`` and register the CLI.
    """
    enabled = is_sync_enabled(app)
    state = _ensure_extension_state(app)
    state["enabled"] = enabled
    record_sync_status(enabled)

    if not enabled:
        state["adapter_readiness"] = {}
        _set_cli(app, enabled=False)
        app.logger.info("SIS sync disabled via SIS_SYNC_ENABLED flag; skipping registration.")
        return

    readiness = check_sis_adapter_readiness(app.config)
    state["adapter_readiness"] = readiness.as_dict()
    if readiness.status != "ready":
        messages = list(readiness.messages())
        app.logger.warning(
            "SIS adapter not ready (status=%s). %s",
            readiness.status,
            "; ".join(messages) if messages else "No additional context provided.",
            extra={"sis_adapter_status": readiness.status, "sis_adapter_messages": messages},
        )
    _set_cli(app, enabled=True)
    app.logger.info("SIS sync enabled")


def get_sync_state(app: Flask) -> dict:
    return dict(_ensure_extension_state(app))
