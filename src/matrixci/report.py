# report.py
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

from .model import JobResult, StepResult


def step_to_dict(r: StepResult) -> Dict[str, Any]:
    return {
        "step": r.step.name,
        "shell": r.step.shell,
        "run": r.step.run,
        "exit_code": r.exit_code,
        "started_at": r.started_at.isoformat(),
        "finished_at": r.finished_at.isoformat(),
        "duration": round(r.duration, 3),
        "stdout": r.stdout,
        "stderr": r.stderr,
    }


def job_to_dict(r: JobResult) -> Dict[str, Any]:
    return {
        "name": r.job.name,
        "variables": dict(r.job.variables),
        "status": r.status,
        "allow_failure": r.job.allow_failure,
        "failed_step": r.failed_step.name if r.failed_step else None,
        "error": r.error,
        "steps": [step_to_dict(s) for s in r.steps],
    }


def results_to_dict(results: List[JobResult]) -> Dict[str, Any]:
    """Serializable summary of a whole matrix run."""
    failed = [r.job.name for r in results if r.counts_as_failure]
    return {
        "status": "failed" if failed else "success",
        "failed_jobs": failed,
        "jobs": [job_to_dict(r) for r in results],
    }


def write_report(path: str | Path, results: List[JobResult]) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(results_to_dict(results), indent=2), encoding="utf-8")
    return p
