# src/main.py - v2
"""CLI entry point: submit, status, jobs, logs, recover commands.

Usage:
    wavebrief submit <case_id> --user <user_id> [options]
    wavebrief status (--job <job_id> | --case <case_id>) [--user <user_id>]
    wavebrief jobs <case_id>
    wavebrief logs <job_id> --user <user_id> [--stage N] [--thoughts]
    wavebrief recover [--mode fail|resume]

Jobs run inside this process, so submit waits for the job to finish.
Case data is read from JSON files under CASE_DATA_ROOT.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from wavebrief.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    from wavebrief.config.settings import ConfigurationError

    try:
        settings = _load_settings(args)
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    _setup_logging(settings, args.verbose)

    from wavebrief.core.errors import WaveBriefError

    try:
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except WaveBriefError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="wavebrief",
        description=f"wavebrief v{__version__} - eight-stage amicus brief generator",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--cases", type=Path, default=None,
        help="Directory of case JSON files (default: CASE_DATA_ROOT)",
    )
    parser.add_argument(
        "--store", choices=("memory", "sqlite", "redis"), default=None,
        help="Job store backend (default: STORE_BACKEND)",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- submit ---
    p_submit = subparsers.add_parser("submit", help="Generate a brief for a case")
    p_submit.add_argument("case_id", help="Case identifier")
    p_submit.add_argument("--user", required=True, help="Owner of the case")
    p_submit.add_argument(
        "--target-words", type=int, default=None,
        help="Target length of the final brief",
    )
    p_submit.add_argument(
        "--selective", action="store_true",
        help="Integrate only the strongest sources (disables aggressive inclusion)",
    )
    p_submit.set_defaults(func=_cmd_submit)

    # --- status ---
    p_status = subparsers.add_parser("status", help="Show job status")
    selector = p_status.add_mutually_exclusive_group(required=True)
    selector.add_argument("--job", dest="job_id", help="Job identifier")
    selector.add_argument("--case", dest="case_id", help="Case identifier")
    p_status.add_argument("--user", default=None, help="Restrict to jobs owned by this user")
    p_status.set_defaults(func=_cmd_status)

    # --- jobs ---
    p_jobs = subparsers.add_parser("jobs", help="List jobs of a case, newest first")
    p_jobs.add_argument("case_id", help="Case identifier")
    p_jobs.set_defaults(func=_cmd_jobs)

    # --- logs ---
    p_logs = subparsers.add_parser("logs", help="Print the log of a job")
    p_logs.add_argument("job_id", help="Job identifier")
    p_logs.add_argument("--user", required=True, help="Owner of the job")
    p_logs.add_argument("--stage", type=int, default=None, help="Only this stage index")
    p_logs.add_argument(
        "--thoughts", action="store_true", help="Print the thoughts feed instead",
    )
    p_logs.set_defaults(func=_cmd_logs)

    # --- recover ---
    p_recover = subparsers.add_parser(
        "recover", help="Fail or resume jobs interrupted by a restart",
    )
    p_recover.add_argument(
        "--mode", choices=("fail", "resume"), default=None,
        help="Recovery mode (default: RECOVERY_MODE)",
    )
    p_recover.set_defaults(func=_cmd_recover)

    return parser


def _load_settings(args: argparse.Namespace):
    from wavebrief.config.settings import load_settings

    overrides: dict[str, object] = {}
    if args.cases is not None:
        overrides["case_data_root"] = args.cases
    if args.store is not None:
        overrides["store_backend"] = args.store
    if getattr(args, "mode", None) is not None:
        overrides["recovery_mode"] = args.mode
    # Recovery only runs when asked for explicitly.
    overrides["recover_on_startup"] = args.command == "recover"
    return load_settings(**overrides)


def _service(settings):
    from wavebrief.api.facade import WaveBriefService

    return WaveBriefService.from_settings(settings)


async def _cmd_submit(args: argparse.Namespace, settings) -> int:
    """Submit a job and wait for it to finish."""
    config: dict[str, object] = {}
    if args.target_words is not None:
        config["target_word_count"] = args.target_words
    if args.selective:
        config["aggressive_inclusion"] = False

    service = _service(settings)
    try:
        submission = await service.submit(args.case_id, args.user, config)
        print(f"Job {submission.job_id} queued ({submission.stages_total} stages, "
              f"~{submission.estimated_completion_minutes} min)")
        job = await service.wait(submission.job_id)
        views = await service.status(job_id=job.id)
        _print_status(views[0])
    finally:
        await service.close()
    return 0 if job.status == "completed" else 1


async def _cmd_status(args: argparse.Namespace, settings) -> int:
    service = _service(settings)
    try:
        views = await service.status(job_id=args.job_id, case_id=args.case_id, user_id=args.user)
    finally:
        await service.close()
    if not views:
        print("No jobs found")
    for view in views:
        _print_status(view)
    return 0


async def _cmd_jobs(args: argparse.Namespace, settings) -> int:
    service = _service(settings)
    try:
        jobs = await service.manager.list_by_case(args.case_id)
    finally:
        await service.close()
    for job in jobs:
        print(f"{job.id}  {job.status:9s}  stage {job.current_stage}/{job.stages_total}  "
              f"{job.created_at:%Y-%m-%d %H:%M:%S}")
    return 0


async def _cmd_logs(args: argparse.Namespace, settings) -> int:
    service = _service(settings)
    try:
        if args.thoughts:
            feed = await service.thoughts(args.job_id, args.user)
            for t in feed.thoughts:
                print(f"[{t.timestamp:%H:%M:%S}] ({t.stage_index}) {t.type}: {t.thought}")
            return 0
        entries = await service.logs(args.job_id, args.user, args.stage)
    finally:
        await service.close()
    for e in entries:
        print(f"[{e.timestamp:%H:%M:%S}] {e.level:5s} ({e.stage_index}) {e.message}")
    return 0


async def _cmd_recover(args: argparse.Namespace, settings) -> int:
    service = _service(settings)
    try:
        recovered = await service.start()
        await service.manager.join()
    finally:
        await service.close()
    print(f"Recovered {len(recovered)} job(s) ({settings.recovery_mode} mode)")
    for job_id in recovered:
        print(f"  {job_id}")
    return 0


def _print_status(view: object) -> None:
    """Print a human-readable summary of a JobStatusView."""
    job = view.job
    print(f"\nJob {job.id} ({job.case_id}): {job.status}")
    print(f"  Stage:        {job.current_stage}/{job.stages_total}")
    for run in view.stage_runs:
        words = run.artifacts.get("word_count")
        suffix = f"  {words} words" if words is not None else ""
        print(f"    {run.stage_index}. {run.stage_name:24s} {run.status}{suffix}")
    if job.status == "completed":
        print(f"  Final brief:  {job.final_artifact_ref} ({job.final_word_count} words)")
    if job.status == "failed":
        print(f"  Error:        {job.error_message}")


def _setup_logging(settings, verbose: bool) -> None:
    """Configure logging for CLI usage."""
    from wavebrief.logging.logger import setup_logging

    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )
    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


if __name__ == "__main__":
    sys.exit(main())
