# cli.py
from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from matrixci import settings
from matrixci.config import ConfigError, load_config
from matrixci.matrix import expand, select_jobs
from matrixci.report import write_report
from matrixci.runner import default_workers, exit_code, run_matrix
from matrixci.ui.console import Console, set_console, get_console

# Exit code for an unusable build file, distinct from job failures (1).
EXIT_CONFIG_ERROR = 2


def discover_config(config_arg: str | None) -> Path:
    """
    Discover the build file from argument, MATRIXCI_CONFIG, or the defaults.

    Raises:
        SystemExit: If no build file can be found
    """
    console = get_console()

    explicit = config_arg or settings.CONFIG_PATH
    if explicit:
        config_path = Path(explicit)
        if not config_path.exists():
            console.print_error(
                "Config file not found",
                f"Could not find build file: {explicit}",
                suggestion="Specify a different path:\n  matrixci run --config appveyor.yml",
            )
            sys.exit(EXIT_CONFIG_ERROR)
        return config_path

    for name in settings.DEFAULT_CONFIG_NAMES:
        candidate = Path(name)
        if candidate.exists():
            return candidate

    console.print_error(
        "No config file found",
        "Could not find a build file.",
        details=["Looked for:", *(f"  {n}" for n in settings.DEFAULT_CONFIG_NAMES)],
        suggestion="Create appveyor.yml or specify one explicitly:\n  matrixci run --config my_ci.yml",
    )
    sys.exit(EXIT_CONFIG_ERROR)


def _load_jobs(config_path: Path, patterns: tuple[str, ...]):
    console = get_console()
    try:
        config = load_config(config_path)
    except ConfigError as e:
        console.print_error(
            "Invalid build configuration",
            f"Could not load {config_path}",
            details=[str(e)],
        )
        sys.exit(EXIT_CONFIG_ERROR)

    jobs = select_jobs(expand(config), patterns)
    if not jobs:
        console.print_error(
            "No jobs selected",
            f"No job in {config_path} matches: {', '.join(patterns)}",
            suggestion="List the available jobs with:\n  matrixci plan",
        )
        sys.exit(EXIT_CONFIG_ERROR)
    return jobs


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and detailed output)",
)
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level (defaults to MATRIXCI_LOG_LEVEL or WARNING)",
)
def cli(debug, log_level):
    """matrixci: run an AppVeyor-style build matrix locally."""
    level = "DEBUG" if debug else (log_level or settings.LOG_LEVEL).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    console = Console(debug=debug)
    set_console(console)


@cli.command()
@click.option("--config", "config_file", default=None, help="Build file (defaults to appveyor.yml if present)")
@click.option("--workers", default=None, type=click.IntRange(min=1), help="Number of jobs to run in parallel")
@click.option("--job", "job_patterns", multiple=True, help="Only run jobs whose name matches this glob (repeatable)")
@click.option("--report", "report_path", default=None, type=click.Path(dir_okay=False), help="Write a JSON report here")
@click.option("--show-output/--no-show-output", default=False, show_default=True, help="Print every step's output")
@click.option("--cwd", default=".", show_default=True, type=click.Path(file_okay=False), help="Working directory for steps")
def run(config_file, workers, job_patterns, report_path, show_output, cwd):
    """Expand the matrix and run every job."""
    console = get_console()

    config_path = discover_config(config_file)
    jobs = _load_jobs(config_path, job_patterns)

    max_workers = workers or settings.WORKERS or default_workers()
    console.print_debug(f"Config: {config_path.resolve()}")
    console.print_debug(f"Working directory: {Path(cwd).resolve()}")
    for job in jobs:
        console.print_debug(f"Job {job.name}: {len(job.steps())} step(s), env={job.env}")

    try:
        console.print_run_started(
            config=str(config_path),
            job_count=len(jobs),
            workers=max_workers,
        )

        results = run_matrix(
            jobs,
            cwd=cwd,
            max_workers=max_workers,
            show_output=show_output,
            on_job_done=console.print_job_result,
        )

        console.print_results(results)

        if report_path:
            written = write_report(report_path, results)
            console.print_info(f"Report written to {written}")

        sys.exit(exit_code(results))

    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        console.print_exception(e)
        sys.exit(1)


@cli.command()
@click.option("--config", "config_file", default=None, help="Build file (defaults to appveyor.yml if present)")
@click.option("--job", "job_patterns", multiple=True, help="Only show jobs whose name matches this glob (repeatable)")
def plan(config_file, job_patterns):
    """Show the expanded jobs without running them."""
    config_path = discover_config(config_file)
    jobs = _load_jobs(config_path, job_patterns)
    get_console().print_plan(jobs)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
