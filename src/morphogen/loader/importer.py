"""
GrammarLoader: parses rule files into grammars.

A rule file is made of named blocks, in any order:

    KeyDecl  { G=KEY_DRAW; L=KEY_LEAF; }         optional
    Alphabet { F, G, X, L, [, ], +, - }          required
    Axiom    { X; }                              required
    Rules    { X=F[+X]G[-X]+XL; F=FF; }          required, may be empty
    DrawInfo { LENGTH=0.5; MAX_ROT_Z=25; }       optional

All whitespace is insignificant. The characters ``, { } = ;`` are
reserved; everything else is a symbol. Only symbols listed in the
Alphabet may appear in the Axiom or on the left of a rule, control
symbols included.
"""

import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, NoReturn

import structlog

from morphogen.core.grammar import Grammar
from morphogen.core.symbols import (
    DEFAULT_KEY_BINDINGS,
    KEY_NAMES,
    DrawParams,
    KeyAction,
    Rule,
    is_grammar,
)
from morphogen.loader.diagnostics import (
    Diagnostic,
    DiagnosticCode,
    LoadResult,
    Severity,
)

logger = structlog.get_logger()

KEY_DECL = "KeyDecl"
ALPHABET = "Alphabet"
AXIOM = "Axiom"
RULES = "Rules"
DRAW_INFO = "DrawInfo"

WHITESPACE = " \t\r\n"

DRAW_KEYS: dict[str, str] = {
    "LENGTH": "length",
    "LENGTH_REDUCTION": "length_reduction",
    "WIDTH": "width",
    "WIDTH_REDUCTION": "width_reduction",
    "MIN_ROT_X": "min_rot_x",
    "MAX_ROT_X": "max_rot_x",
    "MIN_ROT_Y": "min_rot_y",
    "MAX_ROT_Y": "max_rot_y",
    "MIN_ROT_Z": "min_rot_z",
    "MAX_ROT_Z": "max_rot_z",
    "RANDOMIZE": "randomize",
}

_DECIMAL = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")
_TRUE_VALUES = {"1", "true", "TRUE", "True"}
_FALSE_VALUES = {"0", "false", "FALSE", "False"}


def compact(text: str) -> str:
    """Remove every whitespace character, keeping the order of the rest."""
    return text.translate(str.maketrans("", "", WHITESPACE))


def statements(block: str) -> Iterator[tuple[str, bool]]:
    """
    Split a block into ';'-separated statements.

    Yields (statement, terminated) pairs, skipping empty statements. Only
    the trailing statement can be unterminated.
    """
    *terminated, tail = block.split(";")
    for statement in terminated:
        if statement:
            yield statement, True
    if tail:
        yield tail, False


class _LoadAborted(Exception):
    """Raised internally on the first fatal diagnostic."""


@dataclass
class _ParseState:
    """Working state of a single load call."""

    text: str
    errors: list[Diagnostic] = field(default_factory=list)
    warnings: list[Diagnostic] = field(default_factory=list)
    bindings: dict[str, KeyAction] = field(default_factory=dict)
    alphabet: set[str] = field(default_factory=set)
    axiom: str = ""
    replacements: dict[str, str] = field(default_factory=dict)
    draw_params: DrawParams | None = None


class GrammarLoader:
    """
    Parses rule-file text into a Grammar.

    Sections are processed in a fixed order (KeyDecl, Alphabet, Axiom,
    Rules, DrawInfo) regardless of where they appear in the file, so the
    alphabet is always known before the axiom and rules are checked.
    """

    def __init__(self) -> None:
        self._log = logger.bind(component="grammar_loader")

    def load(self, text: str) -> LoadResult:
        """Parse rule-file text. Never raises for malformed input."""
        state = _ParseState(text=compact(text))

        try:
            self._load_key_declarations(state)
            self._load_alphabet(state)
            self._load_axiom(state)
            self._load_rules(state)
            self._load_draw_info(state)
        except _LoadAborted:
            return LoadResult(success=False, errors=state.errors, warnings=state.warnings)

        grammar = self._build_grammar(state)
        self._log.info(
            "grammar_loaded",
            alphabet_size=len(grammar.alphabet),
            axiom_length=len(grammar.axiom),
            rules=len(state.replacements),
            warnings=len(state.warnings),
        )
        return LoadResult(success=True, grammar=grammar, warnings=state.warnings)

    def load_file(self, path: str | Path) -> LoadResult:
        """Read a rule file from disk and parse it."""
        path = Path(path)
        self._log.debug("reading_rule_file", path=str(path))
        return self.load(path.read_text(encoding="utf-8"))

    # --- Diagnostics ---

    def _warn(
        self,
        state: _ParseState,
        code: DiagnosticCode,
        section: str,
        message: str,
        symbol: str | None = None,
    ) -> None:
        state.warnings.append(Diagnostic(
            code=code,
            severity=Severity.WARNING,
            section=section,
            message=message,
            symbol=symbol,
        ))
        self._log.warning(
            "grammar_warning", code=code.name, section=section, symbol=symbol, detail=message
        )

    def _fail(
        self,
        state: _ParseState,
        code: DiagnosticCode,
        section: str,
        message: str,
        symbol: str | None = None,
    ) -> NoReturn:
        state.errors.append(Diagnostic(
            code=code,
            severity=Severity.ERROR,
            section=section,
            message=message,
            symbol=symbol,
        ))
        self._log.error(
            "grammar_load_failed", code=code.name, section=section, symbol=symbol, detail=message
        )
        raise _LoadAborted(message)

    # --- Section location ---

    def _find_block(self, state: _ParseState, name: str) -> str | None:
        """
        Return the contents of ``name{...}``, or None if it is absent.

        The block ends at the first '}' after the opening brace.
        """
        header = state.text.find(name + "{")
        if header == -1:
            return None

        start = header + len(name) + 1
        end = state.text.find("}", start)
        if end == -1:
            self._fail(
                state,
                DiagnosticCode.UNCLOSED_SECTION,
                name,
                f"No closing brace after {name} section",
            )
        return state.text[start:end]

    def _require_block(self, state: _ParseState, name: str) -> str:
        block = self._find_block(state, name)
        if block is None:
            self._fail(
                state,
                DiagnosticCode.MISSING_SECTION,
                name,
                f"Could not find the {name} section",
            )
        return block

    def _assignment_target(
        self, state: _ParseState, section: str, lhs: str, statement: str
    ) -> str | None:
        """Resolve the single symbol on the left of '='."""
        target = lhs[-1:] if lhs else ""
        if not target or is_grammar(target):
            self._warn(
                state,
                DiagnosticCode.MALFORMED_ASSIGNMENT,
                section,
                f"Malformed {section} assignment '{statement}', no symbol before '='",
            )
            return None
        if len(lhs) > 1:
            self._warn(
                state,
                DiagnosticCode.MALFORMED_ASSIGNMENT,
                section,
                f"Malformed {section} assignment '{statement}', "
                f"read as an assignment to '{target}'",
                symbol=target,
            )
        return target

    # --- Sections ---

    def _load_key_declarations(self, state: _ParseState) -> None:
        state.bindings = dict(DEFAULT_KEY_BINDINGS)
        block = self._find_block(state, KEY_DECL)
        if block is None:
            return

        for statement, _ in statements(block):
            lhs, sep, key_name = statement.partition("=")
            if not sep:
                self._warn(
                    state,
                    DiagnosticCode.MALFORMED_ASSIGNMENT,
                    KEY_DECL,
                    f"Malformed KeyDecl assignment '{statement}', missing '='",
                )
                continue

            symbol = self._assignment_target(state, KEY_DECL, lhs, statement)
            if symbol is None:
                continue

            action = KEY_NAMES.get(key_name)
            if action is None:
                self._warn(
                    state,
                    DiagnosticCode.UNKNOWN_KEY,
                    KEY_DECL,
                    f"Malformed KeyDecl assignment, {key_name} not recognised",
                    symbol=symbol,
                )
                continue

            # An action has one symbol, the last declaration wins
            for bound in [s for s, a in state.bindings.items() if a == action]:
                del state.bindings[bound]
            state.bindings[symbol] = action

    def _load_alphabet(self, state: _ParseState) -> None:
        block = self._require_block(state, ALPHABET)

        state.alphabet = {char for char in block if not is_grammar(char)}

    def _load_axiom(self, state: _ParseState) -> None:
        block = self._require_block(state, AXIOM)

        buffer: list[str] = []
        for char in block:
            if char == ";":
                break
            if is_grammar(char):
                if buffer:
                    self._warn(
                        state,
                        DiagnosticCode.GRAMMAR_IN_AXIOM,
                        AXIOM,
                        "Grammar found in Axiom will be ignored, consider removing it",
                        symbol=char,
                    )
                continue
            if char in state.alphabet:
                buffer.append(char)
            else:
                self._warn(
                    state,
                    DiagnosticCode.SYMBOL_NOT_IN_ALPHABET,
                    AXIOM,
                    f"Symbol {char} is not in the Alphabet, but is in the Axiom",
                    symbol=char,
                )

        if not buffer:
            self._fail(state, DiagnosticCode.EMPTY_AXIOM, AXIOM, "No axiom found")
        state.axiom = "".join(buffer)

    def _load_rules(self, state: _ParseState) -> None:
        block = self._require_block(state, RULES)

        for statement, terminated in statements(block):
            lhs, sep, replacement = statement.partition("=")
            if not sep:
                self._warn(
                    state,
                    DiagnosticCode.MALFORMED_ASSIGNMENT,
                    RULES,
                    f"Malformed rule '{statement}', missing '='",
                )
                continue

            symbol = self._assignment_target(state, RULES, lhs, statement)
            if symbol is None:
                continue

            if symbol not in state.alphabet:
                self._warn(
                    state,
                    DiagnosticCode.SYMBOL_NOT_IN_ALPHABET,
                    RULES,
                    f"Symbol {symbol} is not in the Alphabet, but is in the Rules",
                    symbol=symbol,
                )
                continue

            if not terminated:
                self._fail(
                    state,
                    DiagnosticCode.UNTERMINATED_RULE,
                    RULES,
                    f"No semicolon after {symbol}'s rule",
                    symbol=symbol,
                )

            for unknown in dict.fromkeys(c for c in replacement if c not in state.alphabet):
                self._warn(
                    state,
                    DiagnosticCode.SYMBOL_NOT_IN_ALPHABET,
                    RULES,
                    f"Symbol {unknown} is not in the Alphabet, but is in {symbol}'s rule",
                    symbol=unknown,
                )

            if symbol in state.replacements:
                self._warn(
                    state,
                    DiagnosticCode.DUPLICATE_RULE,
                    RULES,
                    f"Symbol {symbol} has more than one rule, the last one is used",
                    symbol=symbol,
                )
            state.replacements[symbol] = replacement

    def _load_draw_info(self, state: _ParseState) -> None:
        block = self._find_block(state, DRAW_INFO)
        if block is None:
            return

        values: dict[str, Any] = {}
        for statement, _ in statements(block):
            key, sep, raw = statement.partition("=")
            if not sep:
                self._warn(
                    state,
                    DiagnosticCode.MALFORMED_ASSIGNMENT,
                    DRAW_INFO,
                    f"Malformed DrawInfo entry '{statement}', missing '='",
                )
                continue

            field_name = DRAW_KEYS.get(key)
            if field_name is None:
                self._warn(
                    state,
                    DiagnosticCode.UNKNOWN_DRAW_KEY,
                    DRAW_INFO,
                    f"Unknown DrawInfo key {key}",
                )
                continue

            value = self._parse_draw_value(field_name, raw)
            if value is None:
                self._warn(
                    state,
                    DiagnosticCode.INVALID_NUMBER,
                    DRAW_INFO,
                    f"Value '{raw}' for {key} is not a valid number",
                )
                continue
            values[field_name] = value

        state.draw_params = DrawParams(**values)

    @staticmethod
    def _parse_draw_value(field_name: str, raw: str) -> float | bool | None:
        if field_name == "randomize":
            if raw in _TRUE_VALUES:
                return True
            if raw in _FALSE_VALUES:
                return False
            return None
        if not _DECIMAL.fullmatch(raw):
            return None
        return float(raw)

    # --- Assembly ---

    @staticmethod
    def _build_grammar(state: _ParseState) -> Grammar:
        rules: dict[str, Rule] = {}
        for symbol in {*state.replacements, *state.bindings}:
            rules[symbol] = Rule(
                symbol=symbol,
                replacement=state.replacements.get(symbol),
                action=state.bindings.get(symbol, KeyAction.NONE),
            )
        return Grammar(
            alphabet=frozenset(state.alphabet),
            axiom=state.axiom,
            rules=rules,
            draw_params=state.draw_params,
        )


_default_loader = GrammarLoader()


def load_grammar(text: str) -> LoadResult:
    """Parse rule-file text with a shared loader."""
    return _default_loader.load(text)


def load_grammar_file(path: str | Path) -> LoadResult:
    """Read and parse a rule file with a shared loader."""
    return _default_loader.load_file(path)
