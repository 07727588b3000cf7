# model.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple


# Execution order of the step lists inside a job.
PHASES: Tuple[str, ...] = ("init", "install", "build", "test")

SHELLS: Tuple[str, ...] = ("default", "cmd", "ps", "pwsh", "sh")


@dataclass(frozen=True)
class Step:
    """A single command inside one phase of a job."""
    phase: str
    index: int
    run: str
    shell: str = "default"

    @property
    def name(self) -> str:
        return f"{self.phase}[{self.index}]"


@dataclass(frozen=True)
class JobSpec:
    """
    One expanded matrix entry: variables + the four ordered step lists.

    `variables` holds the matrix values (and PLATFORM when declared).
    `env` is what the job's subprocesses see on top of the process
    environment: global environment merged with `variables`.
    """
    name: str
    variables: Dict[str, str]
    env: Dict[str, str]
    init: Tuple[Step, ...] = ()
    install: Tuple[Step, ...] = ()
    build: Tuple[Step, ...] = ()
    test: Tuple[Step, ...] = ()
    allow_failure: bool = False

    def steps(self) -> List[Step]:
        """All steps in execution order."""
        out: List[Step] = []
        for phase in PHASES:
            out.extend(getattr(self, phase))
        return out


@dataclass
class StepResult:
    step: Step
    exit_code: int
    stdout: str
    stderr: str
    started_at: datetime
    finished_at: datetime

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def duration(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()


@dataclass
class JobResult:
    job: JobSpec
    steps: List[StepResult] = field(default_factory=list)
    status: str = "success"  # "success" | "failed"
    failed_step: Optional[Step] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "success"

    @property
    def counts_as_failure(self) -> bool:
        return not self.ok and not self.job.allow_failure
