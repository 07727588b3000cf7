# variables.py
#
# Two jobs:
#   1. ${env:NAME} interpolation of matrix variables into step strings
#      (done once, when the matrix is expanded).
#   2. Recognising steps that only assign an environment variable
#      ($env:PATH="$env:PATH;C:\rust\bin", set X=1, export X=1) so the runner
#      can apply them to the job's own env map instead of a child process
#      whose environment dies with it.
from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

from .model import Step

_NAME = r"[A-Za-z_][A-Za-z0-9_]*"

# `$${env:X}` is the escape for a literal `${env:X}`
_INTERP_RE = re.compile(r"(\$?)\$\{env:(" + _NAME + r")\}")

_PS_ASSIGN_RE = re.compile(r"^\s*\$env:(" + _NAME + r")\s*=\s*(.*?)\s*;?\s*$", re.IGNORECASE)
_CMD_ASSIGN_RE = re.compile(r'^\s*set\s+"?(' + _NAME + r')=(.*?)"?\s*$', re.IGNORECASE)
_SH_ASSIGN_RE = re.compile(r"^\s*export\s+(" + _NAME + r")=(.*?)\s*$")

# cmd.exe chaining, piping and redirection; a `set` carrying these is a compound command
_CMD_OPERATORS = "&|<>^"

# The default shell is cmd.exe on Windows and sh elsewhere.
WINDOWS = os.name == "nt"

_PS_REF_RE = re.compile(r"\$\{env:(" + _NAME + r")\}|\$env:(" + _NAME + r")", re.IGNORECASE)
_CMD_REF_RE = re.compile(r"%(" + _NAME + r")%")
_SH_REF_RE = re.compile(r"\$\{(" + _NAME + r")\}|\$(" + _NAME + r")")


def substitute(text: str, variables: Mapping[str, str]) -> str:
    """
    Replace `${env:NAME}` with variables[NAME].

    Names not in `variables` are left as written so the step's shell can still
    resolve them from the process environment.
    """
    def repl(m: re.Match) -> str:
        escaped, name = m.group(1), m.group(2)
        if escaped:
            return "${env:" + name + "}"
        if name in variables:
            return variables[name]
        return m.group(0)

    return _INTERP_RE.sub(repl, text)


@dataclass(frozen=True)
class Assignment:
    name: str
    value: str
    style: str      # "ps" | "cmd" | "sh"
    expand: bool    # False for single-quoted literals


def _unquote(raw: str) -> Optional[tuple[str, bool]]:
    """Returns (value, expand) or None when `raw` is more than one simple word."""
    if len(raw) >= 2 and raw[0] == raw[-1] and raw[0] in "\"'":
        inner = raw[1:-1]
        if raw[0] in inner:
            return None
        return inner, raw[0] == '"'
    if not raw or any(c.isspace() or c in "\"';|&<>" for c in raw):
        return None
    return raw, True


def parse_assignment(step: Step) -> Optional[Assignment]:
    """
    Recognise a step whose whole command assigns one environment variable.

    Anything more complex (pipelines, expressions, several statements) is not
    an assignment and runs as a normal step.
    """
    run = step.run.strip()
    if "\n" in run:
        return None

    if step.shell in ("ps", "pwsh"):
        m = _PS_ASSIGN_RE.match(run)
        if m:
            unq = _unquote(m.group(2))
            if unq is not None:
                return Assignment(m.group(1), unq[0], "ps", unq[1])
        return None

    default_style = "cmd" if WINDOWS else "sh"

    if step.shell == "cmd" or (step.shell == "default" and default_style == "cmd"):
        m = _CMD_ASSIGN_RE.match(run)
        if m and not any(c in m.group(2) for c in _CMD_OPERATORS):
            return Assignment(m.group(1), m.group(2), "cmd", True)
        return None

    if step.shell in ("sh", "default"):
        m = _SH_ASSIGN_RE.match(run)
        if m:
            unq = _unquote(m.group(2))
            if unq is not None:
                return Assignment(m.group(1), unq[0], "sh", unq[1])

    return None


def _lookup(name: str, env: Mapping[str, str]) -> str:
    if name in env:
        return env[name]
    return os.environ.get(name, "")


def expand_value(assignment: Assignment, env: Mapping[str, str]) -> str:
    """Expand references to other variables inside an assignment's value."""
    if not assignment.expand:
        return assignment.value

    if assignment.style == "ps":
        pattern = _PS_REF_RE
    elif assignment.style == "cmd":
        pattern = _CMD_REF_RE
    else:
        pattern = _SH_REF_RE

    def repl(m: re.Match) -> str:
        name = next(g for g in m.groups() if g)
        return _lookup(name, env)

    return pattern.sub(repl, assignment.value)


def apply_assignment(assignment: Assignment, env: Dict[str, str]) -> Dict[str, str]:
    """Return a new env map with the assignment applied. `env` is not modified."""
    updated = dict(env)
    updated[assignment.name] = expand_value(assignment, env)
    return updated
