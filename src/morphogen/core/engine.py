"""
LSystem: the derivation engine.

Owns the generation history, applies per-symbol rewriting to grow it,
shrinks or compacts it on request, and replays the current generation
through a visitor.

State machine:
    EMPTY --set_axiom--> READY(depth=1)
    READY(k) --iterate--> READY(k+1)
    READY(k) --decrement, k>1--> READY(k-1)
    READY(k) --collapse--> READY(k), ancestors discarded
"""

from enum import Enum, auto

import structlog

from morphogen.core.generation import Generation, GenerationBuilder, History
from morphogen.core.grammar import Grammar
from morphogen.core.symbols import (
    DEFAULT_KEY_BINDINGS,
    DrawParams,
    KeyAction,
    SymbolCallback,
    validate_symbol,
)
from morphogen.core.visitor import Visitor

logger = structlog.get_logger()


class EngineState(Enum):
    """Lifecycle states of an engine."""

    EMPTY = auto()  # No axiom yet
    READY = auto()  # At least one generation in history


class EngineStateError(RuntimeError):
    """An engine operation was called in a state that does not allow it."""


# Visitor method invoked for each bound action. NONE dispatches nothing.
ACTION_DISPATCH: dict[KeyAction, str] = {
    KeyAction.DRAW: "draw_line",
    KeyAction.ROTATE_POSITIVE: "rotate_positive",
    KeyAction.ROTATE_NEGATIVE: "rotate_negative",
    KeyAction.PUSH: "push_stack",
    KeyAction.POP: "pop_stack",
    KeyAction.ROTATE: "rotate",
    KeyAction.LEAF: "draw_leaf",
    KeyAction.CUSTOM: "custom",
}


class LSystem:
    """
    Context-free string rewriting engine with retained history.

    Every derivation rewrites each symbol of the latest generation
    independently: a symbol with a replacement emits it, any other symbol
    is copied unchanged. A symbol callback, if present, runs right after
    the symbol's output has been emitted.

    A bare engine starts with the default key bindings. Installing a
    grammar replaces them with the grammar's own.
    """

    def __init__(self, grammar: Grammar | None = None) -> None:
        self._history = History()
        self._grammar: Grammar | None = None
        self._replacements: dict[str, str] = {}
        self._callbacks: dict[str, SymbolCallback] = {}
        self._bindings: dict[str, KeyAction] = dict(DEFAULT_KEY_BINDINGS)
        self._draw_params: DrawParams | None = None
        self._translation: dict[int, str] | None = None
        self._log = logger.bind(component="lsystem")

        if grammar is not None:
            self.install(grammar)

    # --- Properties ---

    @property
    def state(self) -> EngineState:
        return EngineState.READY if self._history else EngineState.EMPTY

    @property
    def has_axiom(self) -> bool:
        return bool(self._history)

    @property
    def grammar(self) -> Grammar | None:
        return self._grammar

    @property
    def current(self) -> Generation:
        """The most recent generation."""
        self._require_axiom("read the current generation")
        return self._history.latest

    @property
    def depth(self) -> int:
        """Depth of the current generation; 0 before an axiom is set."""
        return self._history.latest.depth if self._history else 0

    @property
    def history(self) -> tuple[Generation, ...]:
        return self._history.snapshot()

    @property
    def generation_count(self) -> int:
        return len(self._history)

    @property
    def total_symbols(self) -> int:
        """Symbols retained across the whole history."""
        return self._history.total_symbols

    @property
    def key_bindings(self) -> dict[str, KeyAction]:
        return dict(self._bindings)

    @property
    def replacements(self) -> dict[str, str]:
        return dict(self._replacements)

    @property
    def draw_params(self) -> DrawParams | None:
        return self._draw_params

    # --- Configuration ---

    def install(self, grammar: Grammar) -> None:
        """Take over rules, bindings and parameters of a grammar and set its axiom."""
        if self.has_axiom:
            raise EngineStateError("Cannot install a grammar: axiom already set")

        self._bindings = {}
        for symbol, rule in grammar.rules.items():
            if rule.replacement is not None:
                self._replacements[symbol] = rule.replacement
            if rule.callback is not None:
                self._callbacks[symbol] = rule.callback
            if rule.action != KeyAction.NONE:
                self._bindings[symbol] = rule.action
        self._draw_params = grammar.draw_params
        self._translation = None
        self._grammar = grammar

        self._log.info(
            "grammar_installed",
            alphabet_size=len(grammar.alphabet),
            rules=len(self._replacements),
            bindings=len(self._bindings),
        )
        self.set_axiom(grammar.axiom)

    def set_axiom(self, symbols: str) -> Generation:
        """Create the depth-1 generation. Allowed exactly once."""
        if self.has_axiom:
            raise EngineStateError("Axiom already set")
        if not symbols:
            raise ValueError("Axiom must contain at least one symbol")

        generation = Generation(depth=1, symbols=symbols)
        self._history.append(generation)
        self._log.debug("axiom_set", length=len(symbols), generation_id=generation.id)
        return generation

    def add_rule(self, symbol: str, replacement: str) -> None:
        validate_symbol(symbol)
        self._replacements[symbol] = replacement
        self._translation = None

    def remove_rule(self, symbol: str) -> bool:
        if self._replacements.pop(symbol, None) is None:
            return False
        self._translation = None
        return True

    def set_callback(self, symbol: str, callback: SymbolCallback | None) -> None:
        """Attach or clear the native derivation callback for a symbol."""
        validate_symbol(symbol)
        if callback is None:
            self._callbacks.pop(symbol, None)
        else:
            self._callbacks[symbol] = callback

    def bind_key(self, symbol: str, action: KeyAction) -> None:
        validate_symbol(symbol)
        if action == KeyAction.NONE:
            self._bindings.pop(symbol, None)
        else:
            self._bindings[symbol] = action

    def set_draw_params(self, draw_params: DrawParams | None) -> None:
        self._draw_params = draw_params

    # --- Derivation ---

    def iterate(self, n: int = 1) -> Generation:
        """
        Apply ``n`` derivation steps in sequence.

        Each step reads only the output of the previous one. Returns the
        new current generation.
        """
        if n < 0:
            raise ValueError(f"Iteration count must be >= 0, got {n}")
        self._require_axiom("iterate")

        for _ in range(n):
            self._derive()
        return self._history.latest

    def decrement(self, n: int = 1) -> Generation:
        """Discard the latest ``n`` generations. At least one must remain."""
        if n < 1:
            raise ValueError(f"Decrement count must be >= 1, got {n}")
        self._require_axiom("decrement")

        retained = len(self._history)
        if n >= retained:
            raise EngineStateError(
                f"Cannot decrement by {n}: only {retained - 1} derivation(s) retained"
            )

        self._history.truncate(n)
        self._log.debug("history_decremented", count=n, depth=self.depth)
        return self._history.latest

    def collapse(self) -> Generation:
        """
        Drop every generation except the current one.

        The current generation keeps its content and depth but loses its
        ancestor, so it can no longer be decremented past.
        """
        self._require_axiom("collapse")

        discarded = len(self._history) - 1
        freed = self._history.total_symbols - len(self._history.latest)
        kept = self._history.collapse()
        self._log.info(
            "history_collapsed",
            depth=kept.depth,
            discarded=discarded,
            freed_symbols=freed,
        )
        return kept

    def _derive(self) -> None:
        previous = self._history.latest

        if self._callbacks:
            builder = GenerationBuilder(depth=previous.depth + 1, parent_id=previous.id)
            for index, symbol in enumerate(previous.symbols):
                builder.read_index = index
                builder.emit(self._replacements.get(symbol, symbol))
                callback = self._callbacks.get(symbol)
                if callback is not None:
                    callback(builder, index)
            generation = builder.freeze()
        else:
            generation = Generation(
                depth=previous.depth + 1,
                symbols=previous.symbols.translate(self._translation_table()),
                parent_id=previous.id,
            )

        self._history.append(generation)
        self._log.debug(
            "generation_derived",
            depth=generation.depth,
            previous_length=len(previous),
            length=len(generation),
        )

    def _translation_table(self) -> dict[int, str]:
        if self._translation is None:
            self._translation = str.maketrans(self._replacements)
        return self._translation

    # --- Replay ---

    def visualize(self, visitor: Visitor) -> int:
        """
        Replay the current generation through a visitor.

        Does not touch the history. Returns the number of action calls made
        between ``init`` and ``finished``.
        """
        self._require_axiom("visualize")
        generation = self._history.latest

        handlers = {
            symbol: getattr(visitor, ACTION_DISPATCH[action])
            for symbol, action in self._bindings.items()
            if action in ACTION_DISPATCH
        }

        visitor.set_state(generation)
        visitor.init(self._draw_params)
        dispatched = 0
        for symbol in generation.symbols:
            handler = handlers.get(symbol)
            if handler is not None:
                handler()
                dispatched += 1
        visitor.finished()

        self._log.debug(
            "generation_visualized",
            depth=generation.depth,
            symbols=len(generation),
            dispatched=dispatched,
        )
        return dispatched

    # --- Helpers ---

    def _require_axiom(self, operation: str) -> None:
        if not self._history:
            raise EngineStateError(f"Cannot {operation}: no axiom set")
