from .config import BuildConfig, ConfigError, load_config, parse_config
from .matrix import expand, select_jobs
from .model import JobResult, JobSpec, Step, StepResult
from .runner import run_job, run_matrix, run_step

__all__ = [
    "BuildConfig", "ConfigError", "load_config", "parse_config",
    "expand", "select_jobs",
    "JobResult", "JobSpec", "Step", "StepResult",
    "run_job", "run_matrix", "run_step",
]
