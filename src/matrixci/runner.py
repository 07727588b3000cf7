# runner.py
from __future__ import annotations

import logging
import os
import subprocess
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional

from . import shells
from .model import JobResult, JobSpec, Step, StepResult
from .ui.console import get_console
from .variables import apply_assignment, parse_assignment

logger = logging.getLogger(__name__)

# Exit code reported when a step's interpreter cannot be found (as POSIX shells do).
EXIT_NOT_FOUND = 127


# ----------------------------------------------------------------------
# Errors
# ----------------------------------------------------------------------

@dataclass
class StepFailure(Exception):
    job: str
    step: str
    cmd: str
    exit_code: int

    def __str__(self) -> str:
        return f"[{self.job}] step '{self.step}' failed (exit={self.exit_code}): {self.cmd}"


# ----------------------------------------------------------------------
# Execution primitives
# ----------------------------------------------------------------------

def _now() -> datetime:
    return datetime.now(timezone.utc)


def run_step(step: Step, env: Mapping[str, str], cwd: str | Path = ".") -> StepResult:
    """
    Run one step as a subprocess and capture its output.

    `env` is overlaid on the process environment and passed explicitly to the
    child; nothing global is modified.
    """
    args, use_shell = shells.invocation(step)

    full_env = os.environ.copy()
    full_env.update(env)

    started = _now()
    try:
        proc = subprocess.run(
            args,
            shell=use_shell,
            cwd=str(cwd),
            env=full_env,
            text=True,
            errors="replace",
            capture_output=True,
        )
    except FileNotFoundError as e:
        return StepResult(step, EXIT_NOT_FOUND, "", f"{e}\n", started, _now())

    return StepResult(step, proc.returncode, proc.stdout, proc.stderr, started, _now())


def _assign_env(step: Step, env: Dict[str, str]) -> Optional[tuple[StepResult, Dict[str, str]]]:
    assignment = parse_assignment(step)
    if assignment is None:
        return None

    started = _now()
    updated = apply_assignment(assignment, env)
    note = f"{assignment.name}={updated[assignment.name]}\n"
    return StepResult(step, 0, note, "", started, _now()), updated


def run_job(job: JobSpec, cwd: str | Path = ".", show_output: bool = False) -> JobResult:
    """
    Run init -> install -> build -> test. The first non-zero exit code stops the job.

    Never raises for step failures; they are recorded on the returned JobResult.
    """
    console = get_console()
    result = JobResult(job=job)
    env: Dict[str, str] = dict(job.env)

    console.print_job_start(job.name)
    try:
        if not Path(cwd).is_dir():
            raise FileNotFoundError(f"[{job.name}] working directory not found: {cwd}")

        for step in job.steps():
            console.print_step(job.name, shells.display(step))

            assigned = _assign_env(step, env)
            if assigned is not None:
                step_result, env = assigned
                logger.debug(f"[{job.name}] {step.name} set {step_result.stdout.strip()}")
            else:
                step_result = run_step(step, env, cwd)

            result.steps.append(step_result)
            if show_output:
                console.print_output(job.name, step_result.stdout, step_result.stderr)

            if not step_result.ok:
                raise StepFailure(
                    job=job.name,
                    step=step.name,
                    cmd=step.run,
                    exit_code=step_result.exit_code,
                )
    except StepFailure as e:
        result.status = "failed"
        result.failed_step = result.steps[-1].step
        result.error = str(e)
        logger.info(str(e))
    except Exception as e:
        # anything else (bad cwd, OS errors) fails this job only
        logger.exception(f"[{job.name}] crashed")
        result.status = "failed"
        result.error = f"{type(e).__name__}: {e}"

    return result


# ----------------------------------------------------------------------
# Public API
# ----------------------------------------------------------------------

def default_workers() -> int:
    c = os.cpu_count() or 2
    return max(1, c - 1)


def run_matrix(
    jobs: List[JobSpec],
    *,
    cwd: str | Path = ".",
    max_workers: int | None = None,
    show_output: bool = False,
    on_job_done: Callable[[JobResult], None] | None = None,
) -> List[JobResult]:
    """
    Run every job in parallel threads. A failed job never stops the others.

    Returns:
      JobResults in the same order as `jobs`.
    """
    if not jobs:
        return []

    if max_workers is None:
        max_workers = default_workers()

    cwd_p = Path(cwd).resolve()
    results: Dict[int, JobResult] = {}

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = {
            pool.submit(run_job, job, cwd_p, show_output): i
            for i, job in enumerate(jobs)
        }

        for fut in as_completed(futures):
            i = futures[fut]
            job_result = fut.result()
            results[i] = job_result
            logger.info(f"[{job_result.job.name}] {job_result.status}")
            if on_job_done is not None:
                on_job_done(job_result)

    return [results[i] for i in range(len(jobs))]


def exit_code(results: List[JobResult]) -> int:
    """0 when every job passed or is allowed to fail, 1 otherwise."""
    if any(r.counts_as_failure for r in results):
        return 1
    return 0
