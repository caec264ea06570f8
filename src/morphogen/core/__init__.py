"""Core abstractions: symbols, grammars, generations, the engine and visitors."""

from morphogen.core.engine import EngineState, EngineStateError, LSystem
from morphogen.core.generation import Generation, GenerationBuilder, History
from morphogen.core.grammar import Grammar
from morphogen.core.symbols import DEFAULT_KEY_BINDINGS, DrawParams, KeyAction, Rule
from morphogen.core.visitor import RecordingVisitor, Visitor

__all__ = [
    "DEFAULT_KEY_BINDINGS",
    "DrawParams",
    "EngineState",
    "EngineStateError",
    "Generation",
    "GenerationBuilder",
    "Grammar",
    "History",
    "KeyAction",
    "LSystem",
    "RecordingVisitor",
    "Rule",
    "Visitor",
]
