"""
morphogen

Grows symbol strings with Lindenmayer rewriting rules and replays them
as drawing commands.

- Grammar: alphabet, axiom, rules, key bindings, drawing hints
- Loader: rule-file text → Grammar, with diagnostics
- LSystem: derivation history (iterate, decrement, collapse) and replay
- Visitor: the interface rendering backends implement
"""

__version__ = "0.1.0"

from morphogen.core.engine import EngineStateError, LSystem
from morphogen.core.generation import Generation, GenerationBuilder
from morphogen.core.grammar import Grammar
from morphogen.core.symbols import DrawParams, KeyAction, Rule
from morphogen.core.visitor import RecordingVisitor, Visitor
from morphogen.loader.diagnostics import GrammarLoadError, LoadResult
from morphogen.loader.importer import GrammarLoader, load_grammar, load_grammar_file

__all__ = [
    "__version__",
    "DrawParams",
    "EngineStateError",
    "Generation",
    "GenerationBuilder",
    "Grammar",
    "GrammarLoadError",
    "GrammarLoader",
    "KeyAction",
    "LSystem",
    "LoadResult",
    "RecordingVisitor",
    "Rule",
    "Visitor",
    "load_grammar",
    "load_grammar_file",
]
