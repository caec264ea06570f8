"""
Grammar: the rule set of an L-system.

A grammar is immutable once built. The ``with_*`` helpers return new
grammars, which is how callbacks and extra bindings are attached to a
grammar that came out of the loader.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from morphogen.core.symbols import (
    DEFAULT_KEY_BINDINGS,
    DrawParams,
    KeyAction,
    Rule,
    SymbolCallback,
    validate_symbol,
)


class Grammar(BaseModel):
    """Alphabet, axiom, per-symbol rules and optional drawing parameters."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    alphabet: frozenset[str] = Field(default_factory=frozenset)
    axiom: str = Field(min_length=1)
    rules: dict[str, Rule] = Field(default_factory=dict)
    draw_params: DrawParams | None = None

    @field_validator("alphabet")
    @classmethod
    def check_alphabet(cls, value: frozenset[str]) -> frozenset[str]:
        for symbol in value:
            validate_symbol(symbol)
        return value

    @classmethod
    def build(
        cls,
        axiom: str,
        replacements: dict[str, str] | None = None,
        *,
        alphabet: str | frozenset[str] | None = None,
        key_bindings: dict[str, KeyAction] | None = None,
        draw_params: DrawParams | None = None,
    ) -> "Grammar":
        """
        Convenience constructor for grammars defined in code.

        Uses the default key bindings unless ``key_bindings`` is given, and
        derives the alphabet from the axiom and rules when none is given.
        """
        replacements = replacements or {}
        bindings = DEFAULT_KEY_BINDINGS if key_bindings is None else key_bindings

        rules: dict[str, Rule] = {}
        for symbol in {*replacements, *bindings}:
            rules[symbol] = Rule(
                symbol=symbol,
                replacement=replacements.get(symbol),
                action=bindings.get(symbol, KeyAction.NONE),
            )

        if alphabet is None:
            alphabet = frozenset(axiom).union(*replacements.values(), replacements)

        return cls(
            alphabet=frozenset(alphabet),
            axiom=axiom,
            rules=rules,
            draw_params=draw_params,
        )

    # --- Views ---

    @property
    def replacements(self) -> dict[str, str]:
        """Map of symbol to replacement for every symbol that has one."""
        return {
            s: r.replacement for s, r in self.rules.items() if r.replacement is not None
        }

    @property
    def key_bindings(self) -> dict[str, KeyAction]:
        """Map of symbol to bound action, omitting unbound symbols."""
        return {s: r.action for s, r in self.rules.items() if r.action != KeyAction.NONE}

    @property
    def callbacks(self) -> dict[str, SymbolCallback]:
        return {s: r.callback for s, r in self.rules.items() if r.callback is not None}

    def rule_for(self, symbol: str) -> Rule | None:
        return self.rules.get(symbol)

    def action_for(self, symbol: str) -> KeyAction:
        rule = self.rules.get(symbol)
        return rule.action if rule else KeyAction.NONE

    # --- Derived grammars ---

    def _with_rule_changes(self, symbol: str, **changes: Any) -> "Grammar":
        validate_symbol(symbol)
        existing = self.rules.get(symbol) or Rule(symbol=symbol)
        rules = {**self.rules, symbol: existing.evolve(**changes)}
        return self.model_copy(update={"rules": rules})

    def with_rule(self, symbol: str, replacement: str | None) -> "Grammar":
        """Return a grammar with the replacement for ``symbol`` set or cleared."""
        return self._with_rule_changes(symbol, replacement=replacement)

    def with_callback(self, symbol: str, callback: SymbolCallback | None) -> "Grammar":
        """Return a grammar with a native derivation callback on ``symbol``."""
        return self._with_rule_changes(symbol, callback=callback)

    def with_key_binding(self, symbol: str, action: KeyAction) -> "Grammar":
        return self._with_rule_changes(symbol, action=action)

    def with_draw_params(self, draw_params: DrawParams | None) -> "Grammar":
        return self.model_copy(update={"draw_params": draw_params})
