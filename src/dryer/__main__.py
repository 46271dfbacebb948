"""Entry point for the dryer control kernel."""

import argparse
import asyncio
import logging
import os
import sys
from typing import Optional

from .config import load_config
from .core.safety import OperationNotAllowed
from .core.scheduler import Scheduler
from .core.states import ApplianceStatus

logger = logging.getLogger("dryer")


def _format_status(scheduler: Scheduler) -> str:
    snap = scheduler.snapshot(recent=0)
    minutes, seconds = divmod(snap.remaining_seconds, 60)
    hours, minutes = divmod(minutes, 60)
    door = "closed" if snap.door_closed else "open"
    if snap.door_locked:
        door += ", locked"
    return (
        f"{snap.program_name} {snap.status.name} | "
        f"{hours:02d}:{minutes:02d}:{seconds:02d} | "
        f"{snap.humidity:.1f}% | {snap.temperature:.1f}°C | door {door}"
    )


async def _run(
    scheduler: Scheduler,
    program: Optional[str],
    duration: Optional[float],
) -> int:
    """Run the scheduler, optionally with one program, until done."""
    await scheduler.start()
    try:
        if program is not None:
            try:
                scheduler.start_program(program)
            except OperationNotAllowed as e:
                logger.error("Cannot start %s: %s", program, e)
                return 1

        loop = asyncio.get_running_loop()
        deadline = None if duration is None else loop.time() + duration
        seen_active = False
        while True:
            await asyncio.sleep(scheduler.config.tick_interval)
            logger.info(_format_status(scheduler))

            status = scheduler.status
            if status in (ApplianceStatus.RUNNING, ApplianceStatus.COOLING):
                seen_active = True
            elif program is not None and seen_active:
                # Program is over (finished, stopped or faulted)
                break
            if deadline is not None and loop.time() >= deadline:
                break
    finally:
        await scheduler.stop()
        await asyncio.to_thread(scheduler.state.flush_events, 1.0)
    return 0


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Clothes Dryer Control Kernel",
    )
    parser.add_argument(
        "--program",
        default=None,
        help="Program to start: cotton, synthetic or wool (default: none)",
    )
    parser.add_argument(
        "--duration",
        type=float,
        default=None,
        help="Stop after this many seconds (default: run until the program ends)",
    )
    parser.add_argument(
        "--env",
        default=None,
        help="Configuration environment (default: DRYER_ENV or 'development')",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: from configuration, INFO)",
    )
    parser.add_argument(
        "--tick-interval",
        type=float,
        default=None,
        help="Seconds between simulation ticks (default: from configuration, 1.0)",
    )

    args = parser.parse_args()

    if args.env:
        os.environ["DRYER_ENV"] = args.env

    config = load_config(env=args.env)
    if args.program is not None and args.program not in config.programs:
        parser.error(
            f"unknown program {args.program!r} "
            f"(choose from {', '.join(sorted(config.programs))})"
        )
    if args.tick_interval is not None:
        config.tick_interval = args.tick_interval

    # Configure logging
    level = args.log_level or config.log_level.upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    scheduler = Scheduler(config)
    try:
        return asyncio.run(_run(scheduler, args.program, args.duration))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 0


if __name__ == "__main__":
    sys.exit(main())
