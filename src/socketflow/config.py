"""Run settings and logging setup for the command line."""
from __future__ import annotations
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from rich.logging import RichHandler

LOG_LEVEL_ENV = "SOCKETFLOW_LOG_LEVEL"


class FlowSettings(BaseModel):
    log_level: str = "WARNING"
    show_progress: bool = True
    overrides: Dict[int, Any] = Field(default_factory=dict)  # node id -> config value

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, v: str) -> str:
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level '{v}'")
        return level


def load_settings(path: Optional[Path] = None) -> FlowSettings:
    data: Dict[str, Any] = {}
    if path is not None:
        data = yaml.safe_load(Path(path).read_text()) or {}
    env_level = os.environ.get(LOG_LEVEL_ENV)
    if env_level:
        data["log_level"] = env_level
    return FlowSettings(**data)


def configure_logging(level: str = "WARNING") -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )
