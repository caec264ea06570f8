"""
Runtime configuration and logging setup.
"""

import logging
import sys
from pathlib import Path
from typing import Literal

import structlog
from pydantic import BaseModel, ConfigDict, Field

from morphogen.core.symbols import DrawParams

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]


class RuntimeSettings(BaseModel):
    """Settings for a command-line run."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    rule_file: Path
    iterations: int = Field(default=4, ge=0)
    collapse: bool = False
    show_symbols: bool = False
    log_level: LogLevel = "INFO"

    # Drawing overrides applied on top of the rule file's DrawInfo
    length: float | None = None
    width: float | None = None

    @property
    def draw_overrides(self) -> DrawParams | None:
        overrides = DrawParams(length=self.length, width=self.width)
        return None if overrides.is_empty else overrides


def configure_logging(level: LogLevel = "INFO") -> None:
    """Install the structured logging pipeline."""
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level)
    logging.getLogger().setLevel(level)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
