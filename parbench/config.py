"""Configuration management for the benchmark engine."""

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .common.enums import Variant

# Worker names the engine invokes; the two Fibonacci variants plus the image worker
BILINEAR_WORKER = "bilinear"
REQUIRED_WORKERS = (Variant.OPENMP.value, Variant.CILK.value, BILINEAR_WORKER)

DimensionOrder = Literal["wh", "hw"]


class WorkerConfig(BaseModel):
    """Configuration for one external worker executable."""

    executable: str
    timeout_s: float = 30.0

    @field_validator("executable")
    @classmethod
    def validate_executable(cls, v: str) -> str:
        """Ensure an executable name is given."""
        if not v or not v.strip():
            raise ValueError("Worker executable cannot be empty")
        return v

    @field_validator("timeout_s")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Ensure the deadline is positive."""
        if v <= 0:
            raise ValueError(f"timeout_s must be positive (got {v})")
        return v


class LimitsConfig(BaseModel):
    """Accepted parameter ranges for incoming requests."""

    n_min: int = 0
    n_max: int = 45
    scaling_min: float = 1.5
    scaling_max: float = 4.0
    default_scaling: float = 2.0

    @model_validator(mode="after")
    def validate_ranges(self) -> "LimitsConfig":
        """Ensure every range is non-empty and the default scaling is inside it."""
        if self.n_min > self.n_max:
            raise ValueError(f"n_min ({self.n_min}) exceeds n_max ({self.n_max})")
        if self.scaling_min > self.scaling_max:
            raise ValueError(
                f"scaling_min ({self.scaling_min}) exceeds scaling_max ({self.scaling_max})"
            )
        if not self.scaling_min <= self.default_scaling <= self.scaling_max:
            raise ValueError(
                f"default_scaling {self.default_scaling} outside "
                f"[{self.scaling_min}, {self.scaling_max}]"
            )
        return self


class TextMarkersConfig(BaseModel):
    """Line markers recognized in the image worker's diagnostic output.

    Each dimension marker declares how its ``AxB`` token is ordered, since the
    worker prints the loaded PNG as width x height but its size summary lines
    as height x width.
    """

    loaded: str = "Berhasil membaca PNG:"
    loaded_order: DimensionOrder = "wh"
    source_size: str = "Ukuran gambar sumber:"
    source_size_order: DimensionOrder = "hw"
    result_size: str = "Ukuran gambar hasil:"
    result_size_order: DimensionOrder = "hw"
    serial_time: str = "Waktu eksekusi SERIAL:"
    thread_run: str = "Testing dengan"
    time_unit: str = "detik"

    @field_validator(
        "loaded", "source_size", "result_size", "serial_time", "thread_run", "time_unit"
    )
    @classmethod
    def validate_marker(cls, v: str) -> str:
        """Ensure markers are non-empty so they cannot match every line."""
        if not v.strip():
            raise ValueError("Markers cannot be empty")
        return v


def _default_workers() -> dict[str, WorkerConfig]:
    return {
        Variant.OPENMP.value: WorkerConfig(executable="fib_omp_json", timeout_s=30.0),
        Variant.CILK.value: WorkerConfig(executable="fib_json_cilk", timeout_s=30.0),
        BILINEAR_WORKER: WorkerConfig(executable="bilinear", timeout_s=60.0),
    }


class EngineConfig(BaseModel):
    """Main engine configuration."""

    workers_dir: str = "."
    workers: dict[str, WorkerConfig] = Field(default_factory=_default_workers)
    default_image: str = "gantrycrane.png"
    max_workers: int = 2
    limits: LimitsConfig = LimitsConfig()
    markers: TextMarkersConfig = TextMarkersConfig()

    @field_validator("workers", mode="before")
    @classmethod
    def fill_default_workers(cls, v: Any) -> Any:
        """Merge configured workers over the built-in defaults."""
        merged: dict[str, Any] = dict(_default_workers())
        if v:
            for name, worker in v.items():
                if isinstance(worker, dict) and name in merged:
                    base = merged[name].model_dump()
                    base.update(worker)
                    worker = base
                merged[name] = worker
        return merged

    @field_validator("max_workers")
    @classmethod
    def validate_max_workers(cls, v: int) -> int:
        """Combined mode needs room for both workers at once."""
        if v < 2:
            raise ValueError(f"max_workers must be at least 2 (got {v})")
        return v

    @model_validator(mode="after")
    def validate_required_workers(self) -> "EngineConfig":
        """Ensure every worker the engine invokes is configured."""
        missing = [name for name in REQUIRED_WORKERS if name not in self.workers]
        if missing:
            raise ValueError(f"Missing worker configuration: {', '.join(missing)}")
        return self

    def worker_path(self, name: str) -> Path:
        """Resolve the absolute executable path of a configured worker."""
        executable = Path(self.workers[name].executable)
        if executable.is_absolute():
            return executable
        return (Path(self.workers_dir) / executable).absolute()


def default_config() -> EngineConfig:
    """Build the configuration used when no config file is given."""
    return EngineConfig(workers_dir=os.getenv("PARBENCH_WORKERS_DIR", "."))


def load_config(path: str | Path | None = None) -> EngineConfig:
    """Load and validate engine configuration from a YAML file."""
    if path is None:
        return default_config()

    config_path = Path(path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, encoding="utf-8") as f:
        raw_config = yaml.safe_load(f) or {}

    if not isinstance(raw_config, dict):
        raise ValueError(
            f"Invalid configuration: expected a mapping, got {type(raw_config).__name__}"
        )

    # Expand environment variables in config
    raw_config = _expand_env_vars(raw_config)

    # Relative worker directories are resolved against the config file
    if raw_config.get("workers_dir"):
        workers_dir = Path(raw_config["workers_dir"])
        if not workers_dir.is_absolute():
            raw_config["workers_dir"] = str(config_path.parent / workers_dir)
    else:
        raw_config["workers_dir"] = os.getenv("PARBENCH_WORKERS_DIR", ".")

    # Validate using Pydantic model
    try:
        return EngineConfig(**raw_config)
    except Exception as e:
        raise ValueError(f"Invalid configuration: {e}") from e


def _expand_env_vars(obj: Any) -> Any:
    """Recursively expand environment variables in configuration."""
    if isinstance(obj, dict):
        return {k: _expand_env_vars(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(item) for item in obj]
    elif isinstance(obj, str):
        return os.path.expandvars(obj)
    else:
        return obj
