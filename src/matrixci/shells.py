# shells.py
from __future__ import annotations

from typing import List, Tuple, Union

from . import settings
from .model import Step

# Stop on the first failing cmdlet and surface a native command's exit code,
# which PowerShell otherwise swallows.
PS_PRELUDE = "$ErrorActionPreference = 'Stop'"
PS_EPILOGUE = "if ($LASTEXITCODE) { exit $LASTEXITCODE }"


def powershell_script(run: str) -> str:
    return "\n".join([PS_PRELUDE, run, PS_EPILOGUE])


def invocation(step: Step) -> Tuple[Union[str, List[str]], bool]:
    """
    Build the subprocess invocation for a step.

    Returns:
      (args, shell) ready for subprocess.run(args, shell=shell).
      Default steps go through the platform shell (sh / cmd.exe), the rest
      name their interpreter explicitly.
    """
    if step.shell == "default":
        return step.run, True
    if step.shell == "cmd":
        return ["cmd", "/d", "/c", step.run], False
    if step.shell == "ps":
        return [settings.POWERSHELL, "-NoProfile", "-NonInteractive", "-Command", powershell_script(step.run)], False
    if step.shell == "pwsh":
        return ["pwsh", "-NoProfile", "-NonInteractive", "-Command", powershell_script(step.run)], False
    if step.shell == "sh":
        return [settings.SH, "-c", step.run], False
    raise ValueError(f"Unknown shell for {step.name}: {step.shell!r}")


def display(step: Step) -> str:
    """Short one-line rendering used in logs and console output."""
    first = step.run.strip().splitlines()[0] if step.run.strip() else ""
    if step.shell == "default":
        return first
    return f"{step.shell}: {first}"
