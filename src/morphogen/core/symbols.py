"""
Symbol-level types for the morphogen system.

A grammar is built from single-character symbols. Each symbol may carry a
replacement (used during derivation), a key action (used during replay)
and a native callback. The three are independent of each other.
"""

from collections.abc import Callable
from enum import Enum, auto
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from morphogen.core.generation import GenerationBuilder


# Characters with structural meaning in the rule-file format.
GRAMMAR_CHARS = frozenset(",{}=;")


def is_grammar(char: str) -> bool:
    """Return True if the character is reserved by the rule-file format."""
    return char in GRAMMAR_CHARS


class KeyAction(Enum):
    """Semantic drawing/control action bound to a symbol."""

    NONE = auto()
    DRAW = auto()
    ROTATE_POSITIVE = auto()
    ROTATE_NEGATIVE = auto()
    PUSH = auto()
    POP = auto()
    ROTATE = auto()
    LEAF = auto()
    CUSTOM = auto()


# Names accepted in a KeyDecl block.
KEY_NAMES: dict[str, KeyAction] = {
    "KEY_DRAW": KeyAction.DRAW,
    "KEY_PLUS_ROTATE": KeyAction.ROTATE_POSITIVE,
    "KEY_MINUS_ROTATE": KeyAction.ROTATE_NEGATIVE,
    "KEY_PUSH": KeyAction.PUSH,
    "KEY_POP": KeyAction.POP,
    "KEY_LEAF": KeyAction.LEAF,
    "KEY_ROTATE": KeyAction.ROTATE,
    "KEY_CUSTOM": KeyAction.CUSTOM,
}

DEFAULT_KEY_BINDINGS: dict[str, KeyAction] = {
    "F": KeyAction.DRAW,
    "[": KeyAction.PUSH,
    "]": KeyAction.POP,
    "+": KeyAction.ROTATE_POSITIVE,
    "-": KeyAction.ROTATE_NEGATIVE,
}

SymbolCallback = Callable[[GenerationBuilder, int], None]


def validate_symbol(value: str) -> str:
    if len(value) != 1:
        raise ValueError(f"A symbol must be a single character, got {value!r}")
    return value


class DrawParams(BaseModel):
    """
    Numeric drawing hints carried by a grammar.

    Every field is optional. An unset field is None, so zero is a value
    like any other and can be set explicitly.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    length: float | None = None
    length_reduction: float | None = None
    width: float | None = None
    width_reduction: float | None = None
    min_rot_x: float | None = None
    max_rot_x: float | None = None
    min_rot_y: float | None = None
    max_rot_y: float | None = None
    min_rot_z: float | None = None
    max_rot_z: float | None = None
    randomize: bool | None = None

    @property
    def is_empty(self) -> bool:
        """Check if no field has been set."""
        return not self.model_dump(exclude_none=True)

    def merge(self, source: "DrawParams") -> "DrawParams":
        """
        Combine with another set of parameters.

        Every field that is set in ``source`` overrides the value here;
        fields left unset in ``source`` keep this instance's value.
        """
        return self.model_copy(update=source.model_dump(exclude_none=True))

    def rotation_range(self, axis: str) -> tuple[float | None, float | None]:
        """Return the (min, max) rotation for axis 'x', 'y' or 'z'."""
        axis = axis.lower()
        if axis not in ("x", "y", "z"):
            raise ValueError(f"Unknown rotation axis: {axis}")
        return getattr(self, f"min_rot_{axis}"), getattr(self, f"max_rot_{axis}")


class Rule(BaseModel):
    """Everything a grammar knows about one symbol."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    symbol: str
    replacement: str | None = None
    action: KeyAction = KeyAction.NONE
    callback: SymbolCallback | None = Field(default=None, exclude=True)

    @field_validator("symbol")
    @classmethod
    def check_symbol(cls, value: str) -> str:
        return validate_symbol(value)

    @property
    def has_replacement(self) -> bool:
        return self.replacement is not None

    def expand(self) -> str:
        """Return the symbols this rule emits during derivation."""
        return self.replacement if self.replacement is not None else self.symbol

    def evolve(self, **changes: Any) -> "Rule":
        """Create a new rule with some fields replaced."""
        return self.model_copy(update=changes)
