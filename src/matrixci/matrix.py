# matrix.py
from __future__ import annotations

import logging
from dataclasses import replace
from fnmatch import fnmatch
from typing import Dict, Iterable, List, Optional, Sequence

from .config import BuildConfig
from .model import PHASES, JobSpec, Step
from .variables import substitute

logger = logging.getLogger(__name__)

PLATFORM_VAR = "PLATFORM"


def job_name(platform: Optional[str], entry: Dict[str, str]) -> str:
    """
    "x64: TARGET=nightly-x86_64-pc-windows-msvc"
    Platform part is dropped when no platform is declared.
    """
    vars_part = ", ".join(f"{k}={v}" for k, v in entry.items())
    if platform and vars_part:
        return f"{platform}: {vars_part}"
    return platform or vars_part or "default"


def _allowed_to_fail(variables: Dict[str, str], allow_failures: Sequence[Dict[str, str]]) -> bool:
    return any(
        all(variables.get(k) == v for k, v in rule.items())
        for rule in allow_failures
    )


def _substitute_steps(steps: Iterable[Step], variables: Dict[str, str]) -> tuple:
    return tuple(replace(s, run=substitute(s.run, variables)) for s in steps)


def expand(config: BuildConfig) -> List[JobSpec]:
    """
    One JobSpec per (platform, matrix entry), platforms outermost.

    Variable precedence: global environment < PLATFORM < matrix entry.
    """
    platforms: List[Optional[str]] = list(config.platforms) or [None]
    entries: List[Dict[str, str]] = list(config.matrix) or [{}]

    jobs: List[JobSpec] = []
    seen: Dict[str, int] = {}

    for platform in platforms:
        for entry in entries:
            variables: Dict[str, str] = {}
            if platform is not None:
                variables[PLATFORM_VAR] = platform
            variables.update(entry)

            env = dict(config.env)
            env.update(variables)

            name = job_name(platform, entry)
            if name in seen:
                seen[name] += 1
                name = f"{name} #{seen[name]}"
            else:
                seen[name] = 1

            phases = {
                phase: _substitute_steps(config.phase_steps(phase), env)
                for phase in PHASES
            }

            jobs.append(JobSpec(
                name=name,
                variables=variables,
                env=env,
                allow_failure=_allowed_to_fail(variables, config.allow_failures),
                **phases,
            ))

    logger.debug(f"Expanded matrix into {len(jobs)} job(s)")
    return jobs


def select_jobs(jobs: List[JobSpec], patterns: Optional[Sequence[str]]) -> List[JobSpec]:
    """Keep jobs whose name matches any fnmatch pattern. No patterns keeps everything."""
    if not patterns:
        return list(jobs)
    return [j for j in jobs if any(fnmatch(j.name, p) for p in patterns)]
