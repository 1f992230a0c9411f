#!/usr/bin/env python3
"""Alert monitor entrypoint — wires the stack and runs until interrupted.

Usage::

    # Watch every organisation with the default config
    python scripts/run.py

    # One organisation, custom config file
    python scripts/run.py --config config/settings.yaml --org-id <uuid>

    # Send a test notification and exit
    python scripts/run.py --org-id <uuid> --test-notification
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys

import structlog

from e21alerts.core.config import load_settings
from e21alerts.core.logging import setup_logging
from e21alerts.hosted.client import HostedClient
from e21alerts.monitor.factory import create_monitor_stack

logger = structlog.get_logger(__name__)


async def run(args: argparse.Namespace) -> int:
    """Start the monitor and run until interrupted."""
    settings = load_settings(args.config)
    setup_logging(level=args.log_level)

    client = HostedClient(settings.hosted)
    monitor = create_monitor_stack(settings, client, org_id=args.org_id)

    # ── One-shot test notification ──────────────────────────────
    if args.test_notification:
        if not args.org_id:
            print("--test-notification requires --org-id", file=sys.stderr)
            await monitor.close()
            await client.close()
            return 2
        result = await monitor.dispatcher.send_test_notification(args.org_id)
        logger.info(
            "test_notification_sent",
            success=result.success,
            outcomes={k.value: v.value for k, v in result.outcomes.items()},
            error=result.error,
        )
        await monitor.close()
        await client.close()
        return 0 if result.success else 1

    logger.info("monitor_starting", org_id=args.org_id, environment=settings.environment)

    # ── Backfill + subscribe ────────────────────────────────────
    try:
        await monitor.load_recent(client)
    except Exception:
        logger.exception("initial_load_failed")

    if not await monitor.start():
        logger.warning("monitor_partially_subscribed")

    # ── Wait for shutdown signal ────────────────────────────────
    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("shutdown_signal_received")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            # Windows: signal handlers not supported on ProactorEventLoop
            pass

    try:
        await stop_event.wait()
    except KeyboardInterrupt:
        logger.info("keyboard_interrupt")

    # ── Graceful shutdown ───────────────────────────────────────
    logger.info("monitor_shutting_down")
    metrics = await monitor.metrics()
    await monitor.close()
    await client.close()

    logger.info(
        "monitor_stopped",
        alerts=len(monitor.alerts()),
        dispatches=len(monitor.dispatches),
        pending_approvals=metrics.pending_approvals,
    )
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Run the E-21 real-time alert monitor.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to settings YAML (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level override: DEBUG, INFO, WARNING, ERROR",
    )
    parser.add_argument(
        "--org-id",
        default=None,
        help="Only watch rows of this organisation",
    )
    parser.add_argument(
        "--test-notification",
        action="store_true",
        help="Send a canned breach notification for --org-id and exit",
    )
    args = parser.parse_args()

    code = asyncio.run(run(args))
    sys.exit(code)


if __name__ == "__main__":
    main()
