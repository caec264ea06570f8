"""Runtime: sessions, settings and the command-line entry point."""

from morphogen.runtime.config import RuntimeSettings, configure_logging
from morphogen.runtime.session import DerivationRequest, LSystemSession

__all__ = [
    "DerivationRequest",
    "LSystemSession",
    "RuntimeSettings",
    "configure_logging",
]
