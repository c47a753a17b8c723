#!/usr/bin/env python3
"""
Basic Usage Example - Work Before Play gate controller

This script walks through one full unlock cycle with an in-memory store
and a shortened grant duration. It shows how to:
- Build and start the gate application
- Save a task from a view
- Request an unlock and watch the countdown
- Observe the automatic relock when the grant expires

Run: python examples/basic_usage.py
"""

import asyncio
from dataclasses import replace

from wbp_app.app import GateApplication
from wbp_app.background import LoggingGateEnforcer
from wbp_app.config.defaults import StoreParams, get_default_config
from wbp_app.frontend import FrontEndView
from wbp_app.logging.config import configure_logging


def print_view(view: FrontEndView, title: str) -> None:
    """Print the current state of a view."""
    status = view.status
    print(f"📋 {title}")
    print(f"  Status: {status.status.value}")
    print(f"  Remaining: {status.remaining_text}")
    print(f"  Task: {status.task_label}")
    if status.message:
        print(f"  Message: {status.message}")
    print()


async def run_demo() -> None:
    print("🚀 Work Before Play - Basic Usage Demo")
    print("=" * 60)

    defaults = get_default_config()
    config = replace(
        defaults,
        gate=replace(defaults.gate, grant_duration_ms=3000, reconciliation_period_ms=1000),
        store=StoreParams(backend="memory"),
    )
    enforcer = LoggingGateEnforcer()

    print("1. Starting the gate application...")
    app = GateApplication(config, enforcer=enforcer)
    await app.start()
    print(f"   Gate enforcing: {enforcer.active is False}")
    print()

    view = app.create_view()
    await view.open()
    print_view(view, "2. Initial view")

    print("3. Saving a task...")
    await view.save_task("  Write the quarterly report  ")
    print_view(view, "   After save")

    print("4. Requesting an unlock...")
    granted = await view.request_unlock()
    print(f"   Granted: {granted}")
    print_view(view, "   After unlock")

    print("5. Waiting for the grant to expire...")
    for _ in range(5):
        await asyncio.sleep(1)
        print(f"   {view.status.status.value:<8} {view.status.remaining_text}")
    print()
    print_view(view, "6. After expiry")

    await view.close()
    await app.stop()

    print(f"Gate decisions recorded: {enforcer.decisions}")
    print("✅ Demo finished")


def main():
    configure_logging(level="WARNING")
    asyncio.run(run_demo())


if __name__ == "__main__":
    main()
