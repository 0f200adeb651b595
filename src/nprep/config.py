"""Configuration management for notion-prep."""

import copy
import os
from pathlib import Path
from typing import Any

import yaml

from .models import ProcessingOptions


DEFAULT_CONFIG = {
    "work_dir": "~/.nprep/jobs",
    "inbox_path": "~/.nprep/inbox",
    "outbox_path": "~/.nprep/outbox",
    "grouping_strategy": "cluster",
    "clustering_k": "auto",
    "kmeans": {"n_init": 5, "max_iter": 50, "tolerance": 1e-4, "seed": None},
    "vectorizer": {"max_features": 50000},
    "limits": {"max_upload_mb": 300},
    "job_ttl_hours": 24,
    "status_backend": "filesystem",
    "log_level": "INFO",
}

ENV_OVERRIDES = {
    "NPREP_WORK_DIR": "work_dir",
    "NPREP_LOG_LEVEL": "log_level",
    "NPREP_STATUS_BACKEND": "status_backend",
}


def _find_config_file() -> Path | None:
    """Look for config.yaml in standard locations."""
    candidates = [
        Path.cwd() / "config" / "config.yaml",
        Path.cwd() / "config.yaml",
        Path.home() / ".nprep" / "config.yaml",
    ]
    for p in candidates:
        if p.exists():
            return p
    return None


def load_config(config_path: str | Path | None = None) -> dict[str, Any]:
    """Load configuration, merging defaults with file and env vars."""
    cfg = copy.deepcopy(DEFAULT_CONFIG)

    path = Path(config_path) if config_path else _find_config_file()
    if path and path.exists():
        with open(path) as f:
            file_cfg = yaml.safe_load(f) or {}
        _deep_merge(cfg, file_cfg)

    for env_var, key in ENV_OVERRIDES.items():
        if value := os.environ.get(env_var):
            cfg[key] = value

    # Expand paths
    for key in ("work_dir", "inbox_path", "outbox_path"):
        cfg[key] = str(Path(cfg[key]).expanduser().resolve())

    return cfg


def options_from_config(config: dict[str, Any], **overrides: Any) -> ProcessingOptions:
    """ProcessingOptions from config defaults; non-None overrides win."""
    values = {
        "clustering_k": config.get("clustering_k", "auto"),
        "grouping_strategy": config.get("grouping_strategy", "cluster"),
        "seed": config.get("kmeans", {}).get("seed"),
    }
    values.update({k: v for k, v in overrides.items() if v is not None})
    return ProcessingOptions.from_values(**values)


def _deep_merge(base: dict, override: dict) -> None:
    """Merge override into base in-place."""
    for k, v in override.items():
        if k in base and isinstance(base[k], dict) and isinstance(v, dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
