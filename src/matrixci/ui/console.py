"""Console output formatting utilities for matrixci."""

from __future__ import annotations

import sys
from typing import List, Optional

from ..model import JobResult, JobSpec


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
        """
        self.debug = debug

    def print_run_started(
        self,
        config: str,
        job_count: int,
        workers: int,
    ) -> None:
        """Print run start information."""
        print("\nRUN STARTED")
        print(f"Config: {config}")
        print(f"Jobs: {job_count}")
        print(f"Workers: {workers}")
        print()

    def print_job_start(self, name: str) -> None:
        """Print job start message."""
        print(f"JOB STARTED: {name}")

    def print_step(self, job: str, step: str) -> None:
        """Print step start message."""
        print(f"[{job}] ▶ {step}")

    def print_output(self, job: str, stdout: str, stderr: str) -> None:
        """Print captured step output, prefixed with the job name."""
        for line in (stdout + stderr).splitlines():
            print(f"[{job}]   {line}")

    def print_job_result(self, result: JobResult) -> None:
        """Print a job's outcome as soon as it finishes."""
        if result.ok:
            print(f"JOB SUCCEEDED: {result.job.name}")
            return

        prefix = "JOB FAILED (allowed)" if result.job.allow_failure else "JOB FAILED"
        print(f"{prefix}: {result.job.name}")
        if result.failed_step is not None:
            last = result.steps[-1]
            print(f"Step: {result.failed_step.name}")
            print(f"Exit code: {last.exit_code}")
            tail = (last.stderr or last.stdout).strip()
            if tail:
                lines = tail.splitlines()
                shown = lines if self.debug else lines[-10:]
                for line in shown:
                    print(f"  {line}")
        elif result.error:
            print(f"Error: {result.error}")

    def print_plan(self, jobs: List[JobSpec]) -> None:
        """Print the expanded job matrix and each job's steps."""
        print(f"\nPLAN ({len(jobs)} job(s))")
        for job in jobs:
            suffix = " (allowed to fail)" if job.allow_failure else ""
            print(f"\n  {job.name}{suffix}")
            for step in job.steps():
                shell = "" if step.shell == "default" else f"{step.shell}: "
                print(f"    {step.name:<12} {shell}{step.run}")

    def print_results(self, results: List[JobResult]) -> None:
        """Print final results summary."""
        print("\n" + "=" * 40)
        print("RESULTS")
        print("=" * 40)
        for r in results:
            status_display = "SUCCESS" if r.ok else "FAILED"
            if not r.ok and r.job.allow_failure:
                status_display += " (allowed)"
            duration = sum(s.duration for s in r.steps)
            print(f"  {r.job.name}: {status_display} [{duration:.1f}s]")

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        print(f"\nERROR: {title}", file=sys.stderr)
        print(f"{message}", file=sys.stderr)
        if details:
            for detail in details:
                print(f"  {detail}", file=sys.stderr)
        if suggestion:
            print(f"\n{suggestion}", file=sys.stderr)

    def print_exception(self, exc: Exception) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exc()
        else:
            print(f"Error: {exc}", file=sys.stderr)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        print(message)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            print(f"[DEBUG] {message}", file=sys.stderr)


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
