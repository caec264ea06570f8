"""
Diagnostics produced while loading a rule file.

Two severities exist. Errors abort loading; warnings skip the offending
item and let loading continue.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum, auto

from pydantic import BaseModel, ConfigDict

from morphogen.core.grammar import Grammar


class Severity(Enum):
    WARNING = auto()
    ERROR = auto()


class DiagnosticCode(Enum):
    """Every condition the loader reports."""

    # Fatal
    MISSING_SECTION = auto()  # Required section not found
    UNCLOSED_SECTION = auto()  # No '}' after a section
    EMPTY_AXIOM = auto()  # No valid symbol left in the axiom
    UNTERMINATED_RULE = auto()  # Rule without ';' before the block end

    # Non-fatal
    SYMBOL_NOT_IN_ALPHABET = auto()
    UNKNOWN_KEY = auto()  # KeyDecl value not recognised
    MALFORMED_ASSIGNMENT = auto()
    GRAMMAR_IN_AXIOM = auto()
    UNKNOWN_DRAW_KEY = auto()
    INVALID_NUMBER = auto()
    DUPLICATE_RULE = auto()


class Diagnostic(BaseModel):
    """A single loader finding, tied to a section and optionally a symbol."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    code: DiagnosticCode
    severity: Severity
    section: str
    message: str
    symbol: str | None = None

    @property
    def is_fatal(self) -> bool:
        return self.severity == Severity.ERROR

    def __str__(self) -> str:
        return f"{self.section}: {self.message}"


class GrammarLoadError(ValueError):
    """A rule file could not be turned into a grammar."""

    def __init__(self, message: str, diagnostics: Sequence[Diagnostic] = ()) -> None:
        super().__init__(message)
        self.diagnostics = tuple(diagnostics)


@dataclass
class LoadResult:
    """Outcome of loading a rule file."""

    success: bool
    grammar: Grammar | None = None
    errors: list[Diagnostic] = field(default_factory=list)
    warnings: list[Diagnostic] = field(default_factory=list)

    @property
    def diagnostics(self) -> list[Diagnostic]:
        return [*self.errors, *self.warnings]

    def has(self, code: DiagnosticCode) -> bool:
        """Check if any diagnostic with the given code was reported."""
        return any(d.code == code for d in self.diagnostics)

    def unwrap(self) -> Grammar:
        """Return the grammar, or raise GrammarLoadError if loading failed."""
        if not self.success or self.grammar is None:
            reason = str(self.errors[0]) if self.errors else "unknown error"
            raise GrammarLoadError(f"Failed to load grammar: {reason}", self.diagnostics)
        return self.grammar
