"""Pipeline scheduler process entrypoint.

Fires each selected pipeline job on its own fixed interval. A tick launches
the job as an independent task even if the previous run is still going.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
from contextlib import suppress

from trendpipe.config import Settings, settings
from trendpipe.core.database import close_db
from trendpipe.core.logging import setup_logging
from trendpipe.services.pipeline_orchestrator import ALL_JOBS, JobName, PipelineOrchestrator

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--job",
        action="append",
        choices=["all", *ALL_JOBS],
        help="Pipeline job to schedule. Repeat to select multiple jobs.",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run the selected jobs once and exit.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level for the trendpipe logger (defaults to LOG_LEVEL).",
    )
    return parser.parse_args(argv)


def resolve_jobs(selected: list[str] | None) -> list[JobName]:
    """Resolve requested jobs to a deterministic ordered list."""
    if not selected or "all" in selected:
        return list(ALL_JOBS)
    return [job for job in ALL_JOBS if job in selected]


def job_interval_seconds(job: JobName, cfg: Settings) -> int:
    intervals: dict[str, int] = {
        "discovery": cfg.keyword_discovery_interval_seconds,
        "sources": cfg.source_maintenance_interval_seconds,
        "scout": cfg.trend_scout_interval_seconds,
        "refresh": cfg.content_refresh_interval_seconds,
    }
    return max(1, int(intervals[job]))


async def run_once(orchestrator: PipelineOrchestrator, jobs: list[JobName]) -> int:
    """Run each job once concurrently; returns the number of failed jobs."""
    outcomes = await asyncio.gather(*(orchestrator.run_job(job) for job in jobs))
    for outcome in outcomes:
        logger.info("Job outcome", extra=outcome.as_dict())
    print(json.dumps([o.as_dict() for o in outcomes], default=str, indent=2))
    return sum(1 for o in outcomes if not o.ok)


async def _tick_loop(
    orchestrator: PipelineOrchestrator,
    job: JobName,
    interval: int,
    stop_event: asyncio.Event,
    in_flight: set[asyncio.Task],
) -> None:
    while not stop_event.is_set():
        task = asyncio.create_task(orchestrator.run_job(job), name=f"pipeline-{job}")
        in_flight.add(task)
        task.add_done_callback(in_flight.discard)

        with suppress(asyncio.TimeoutError):
            await asyncio.wait_for(stop_event.wait(), timeout=interval)


async def run_scheduler(
    *,
    jobs: list[JobName],
    orchestrator: PipelineOrchestrator | None = None,
    cfg: Settings | None = None,
) -> None:
    """Schedule jobs and block until a shutdown signal arrives."""
    cfg = cfg or settings
    orchestrator = orchestrator or PipelineOrchestrator(app_settings=cfg)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def _request_stop() -> None:
        if not stop_event.is_set():
            logger.info("Shutdown signal received")
            stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        with suppress(NotImplementedError):
            loop.add_signal_handler(sig, _request_stop)

    in_flight: set[asyncio.Task] = set()
    loops = [
        asyncio.create_task(
            _tick_loop(orchestrator, job, job_interval_seconds(job, cfg), stop_event, in_flight),
            name=f"scheduler-{job}",
        )
        for job in jobs
    ]
    logger.info(
        "Pipeline scheduler started",
        extra={"jobs": jobs, "intervals": {job: job_interval_seconds(job, cfg) for job in jobs}},
    )

    try:
        await stop_event.wait()
    finally:
        logger.info("Stopping pipeline scheduler", extra={"in_flight": len(in_flight)})
        for task in loops:
            task.cancel()
        for task in list(in_flight):
            task.cancel()
        await asyncio.gather(*loops, *in_flight, return_exceptions=True)
        await close_db()


async def _run_once_and_close(jobs: list[JobName]) -> int:
    try:
        return await run_once(PipelineOrchestrator(), jobs)
    finally:
        await close_db()


def main(argv: list[str] | None = None) -> int:
    """Run the scheduler process."""
    args = parse_args(argv)
    setup_logging(args.log_level)
    jobs = resolve_jobs(args.job)
    try:
        if args.once:
            failed = asyncio.run(_run_once_and_close(jobs))
            return 1 if failed else 0
        asyncio.run(run_scheduler(jobs=jobs))
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
