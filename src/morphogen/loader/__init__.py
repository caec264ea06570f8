"""Rule-file loading."""

from morphogen.loader.diagnostics import (
    Diagnostic,
    DiagnosticCode,
    GrammarLoadError,
    LoadResult,
    Severity,
)
from morphogen.loader.importer import GrammarLoader, load_grammar, load_grammar_file

__all__ = [
    "Diagnostic",
    "DiagnosticCode",
    "GrammarLoadError",
    "GrammarLoader",
    "LoadResult",
    "Severity",
    "load_grammar",
    "load_grammar_file",
]
