"""
Polling worker that runs the backup scheduler on a fixed interval.

Deployments with an external timer can POST to the scheduler endpoint
instead; this loop is for hosts that run the service under systemd or a
supervisor.
"""

from __future__ import annotations

import argparse
import logging
import random
import time
from typing import Optional

from backup_scheduler.config import get_settings
from backup_scheduler.dependencies import get_scheduler
from backup_scheduler.scheduler import BackupScheduler, SchedulerRunResult

logger = logging.getLogger(__name__)


def run_pass(
    scheduler: BackupScheduler, stale_timeout_seconds: float = 0.0
) -> SchedulerRunResult:
    """
    One pass: fail stuck jobs (when enabled), then process due jobs.
    """
    if stale_timeout_seconds > 0:
        try:
            scheduler.fail_stale_jobs(stale_timeout_seconds)
        except Exception:
            logger.exception("Failed to sweep stale backup jobs")
    return scheduler.run_once()


def run_loop(
    *,
    scheduler: Optional[BackupScheduler] = None,
    interval_seconds: float = 60.0,
    jitter_seconds: float = 0.0,
    stale_timeout_seconds: float = 0.0,
    max_passes: Optional[int] = None,
) -> None:
    """
    Run passes until ``max_passes`` is reached (forever when None).
    """
    scheduler = scheduler or get_scheduler()
    passes = 0
    while max_passes is None or passes < max_passes:
        try:
            run_pass(scheduler, stale_timeout_seconds)
        except Exception:
            logger.exception("Backup scheduler pass failed")
        passes += 1
        if max_passes is not None and passes >= max_passes:
            break
        sleep_for = interval_seconds + random.uniform(0, jitter_seconds)
        time.sleep(sleep_for)


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Backup scheduler worker")
    parser.add_argument(
        "--interval-seconds",
        type=float,
        default=60.0,
        help="Seconds between scheduler passes",
    )
    parser.add_argument(
        "--jitter-seconds",
        type=float,
        default=0.0,
        help="Max random jitter added to sleep",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single pass and exit",
    )
    args = parser.parse_args(argv)

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    scheduler = get_scheduler()
    if args.once:
        result = run_pass(scheduler, settings.stale_job_timeout_seconds)
        logger.info("Processed %d backup jobs", result.processed_jobs)
        return 0

    run_loop(
        scheduler=scheduler,
        interval_seconds=args.interval_seconds,
        jitter_seconds=args.jitter_seconds,
        stale_timeout_seconds=settings.stale_job_timeout_seconds,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
