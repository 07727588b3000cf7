from __future__ import annotations
import os

CONFIG_PATH = os.environ.get("MATRIXCI_CONFIG")
DEFAULT_CONFIG_NAMES = ("appveyor.yml", ".appveyor.yml")

WORKERS = int(os.environ["MATRIXCI_WORKERS"]) if os.environ.get("MATRIXCI_WORKERS") else None
LOG_LEVEL = os.environ.get("MATRIXCI_LOG_LEVEL", "WARNING").upper()

POWERSHELL = os.environ.get("MATRIXCI_POWERSHELL", "powershell" if os.name == "nt" else "pwsh")
SH = os.environ.get("MATRIXCI_SHELL", "sh")
