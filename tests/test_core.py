"""Tests for core types: symbols, grammars, generations and visitors."""

import pytest
from pydantic import ValidationError

from morphogen.core.generation import Generation, GenerationBuilder, History
from morphogen.core.grammar import Grammar
from morphogen.core.symbols import (
    DEFAULT_KEY_BINDINGS,
    KEY_NAMES,
    DrawParams,
    KeyAction,
    Rule,
    is_grammar,
)
from morphogen.core.visitor import RecordingVisitor, Visitor


class TestSymbols:
    def test_grammar_characters(self) -> None:
        for char in ",{}=;":
            assert is_grammar(char)
        for char in "AF+-[]":
            assert not is_grammar(char)

    def test_default_bindings(self) -> None:
        assert DEFAULT_KEY_BINDINGS == {
            "F": KeyAction.DRAW,
            "[": KeyAction.PUSH,
            "]": KeyAction.POP,
            "+": KeyAction.ROTATE_POSITIVE,
            "-": KeyAction.ROTATE_NEGATIVE,
        }

    def test_key_names_cover_all_actions_but_none(self) -> None:
        assert set(KEY_NAMES.values()) == set(KeyAction) - {KeyAction.NONE}


class TestDrawParams:
    def test_defaults_are_unset(self) -> None:
        params = DrawParams()
        assert params.length is None
        assert params.randomize is None
        assert params.is_empty

    def test_merge_overrides_set_fields(self) -> None:
        base = DrawParams(length=1.0, width=0.2, max_rot_z=25.0)
        source = DrawParams(length=2.0, min_rot_z=-10.0)
        merged = base.merge(source)

        assert merged.length == 2.0
        assert merged.width == 0.2
        assert merged.min_rot_z == -10.0
        assert merged.max_rot_z == 25.0

    def test_merge_zero_is_a_value(self) -> None:
        base = DrawParams(length=1.0, width_reduction=0.5)
        merged = base.merge(DrawParams(width_reduction=0.0))
        assert merged.width_reduction == 0.0
        assert merged.length == 1.0

    def test_merge_does_not_mutate(self) -> None:
        base = DrawParams(length=1.0)
        base.merge(DrawParams(length=3.0))
        assert base.length == 1.0

    def test_rotation_range(self) -> None:
        params = DrawParams(min_rot_y=-5.0, max_rot_y=5.0)
        assert params.rotation_range("y") == (-5.0, 5.0)
        assert params.rotation_range("X") == (None, None)
        with pytest.raises(ValueError, match="Unknown rotation axis"):
            params.rotation_range("w")

    def test_frozen(self) -> None:
        params = DrawParams(length=1.0)
        with pytest.raises(ValidationError):
            params.length = 2.0  # type: ignore[misc]


class TestRule:
    def test_expand_with_replacement(self) -> None:
        rule = Rule(symbol="F", replacement="FF")
        assert rule.has_replacement
        assert rule.expand() == "FF"

    def test_expand_identity(self) -> None:
        rule = Rule(symbol="+", action=KeyAction.ROTATE_POSITIVE)
        assert not rule.has_replacement
        assert rule.expand() == "+"

    def test_empty_replacement_erases(self) -> None:
        rule = Rule(symbol="X", replacement="")
        assert rule.has_replacement
        assert rule.expand() == ""

    def test_symbol_must_be_single_character(self) -> None:
        with pytest.raises(ValidationError, match="single character"):
            Rule(symbol="FF")

    def test_evolve(self) -> None:
        rule = Rule(symbol="F", replacement="FF")
        bound = rule.evolve(action=KeyAction.DRAW)
        assert bound.action == KeyAction.DRAW
        assert bound.replacement == "FF"
        assert rule.action == KeyAction.NONE


class TestGrammar:
    def test_build_defaults(self) -> None:
        grammar = Grammar.build("F", {"F": "F+F"})
        assert grammar.axiom == "F"
        assert grammar.replacements == {"F": "F+F"}
        assert grammar.key_bindings == DEFAULT_KEY_BINDINGS
        assert grammar.alphabet == frozenset("F+")

    def test_build_custom_bindings(self) -> None:
        grammar = Grammar.build("X", {"X": "GX"}, key_bindings={"G": KeyAction.DRAW})
        assert grammar.key_bindings == {"G": KeyAction.DRAW}
        assert grammar.action_for("F") == KeyAction.NONE
        assert grammar.action_for("G") == KeyAction.DRAW

    def test_empty_axiom_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Grammar(axiom="")

    def test_alphabet_symbols_validated(self) -> None:
        with pytest.raises(ValidationError, match="single character"):
            Grammar(axiom="A", alphabet=frozenset({"AB"}))

    def test_with_rule_returns_new_grammar(self) -> None:
        grammar = Grammar.build("F", {})
        updated = grammar.with_rule("F", "FF")
        assert updated.replacements == {"F": "FF"}
        assert grammar.replacements == {}
        # Binding survives the added replacement
        assert updated.action_for("F") == KeyAction.DRAW

    def test_with_callback(self) -> None:
        def hook(builder: GenerationBuilder, index: int) -> None:
            pass

        grammar = Grammar.build("A", {}).with_callback("A", hook)
        assert grammar.callbacks == {"A": hook}
        assert grammar.rule_for("A") is not None

    def test_with_key_binding(self) -> None:
        grammar = Grammar.build("L", {}).with_key_binding("L", KeyAction.LEAF)
        assert grammar.action_for("L") == KeyAction.LEAF

    def test_with_draw_params(self) -> None:
        grammar = Grammar.build("F", {}).with_draw_params(DrawParams(length=2.0))
        assert grammar.draw_params == DrawParams(length=2.0)


class TestGeneration:
    def test_create_generation(self) -> None:
        generation = Generation(symbols="F+F")
        assert generation.depth == 1
        assert len(generation) == 3
        assert generation.is_root
        assert generation.id

    def test_detach(self) -> None:
        generation = Generation(symbols="FF", depth=2, parent_id="parent")
        detached = generation.detach()
        assert detached.is_root
        assert detached.symbols == generation.symbols
        assert detached.depth == 2
        assert detached.id == generation.id

    def test_depth_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            Generation(symbols="F", depth=0)

    def test_builder_freeze(self) -> None:
        builder = GenerationBuilder(depth=3, parent_id="p")
        builder.emit("AB")
        builder.emit(["C"])
        generation = builder.freeze()
        assert generation.symbols == "ABC"
        assert generation.depth == 3
        assert generation.parent_id == "p"
        assert len(builder) == 3


class TestHistory:
    @pytest.fixture
    def history(self) -> History:
        history = History()
        root = Generation(symbols="F")
        second = Generation(symbols="FF", depth=2, parent_id=root.id)
        third = Generation(symbols="FFFF", depth=3, parent_id=second.id)
        for generation in (root, second, third):
            history.append(generation)
        return history

    def test_latest(self, history: History) -> None:
        assert history.latest.symbols == "FFFF"
        assert len(history) == 3
        assert history.total_symbols == 7

    def test_empty_history(self) -> None:
        history = History()
        assert not history
        with pytest.raises(IndexError):
            history.latest

    def test_append_checks_depth(self, history: History) -> None:
        with pytest.raises(ValueError, match="does not follow"):
            history.append(Generation(symbols="F", depth=7))

    def test_truncate(self, history: History) -> None:
        removed = history.truncate(2)
        assert [g.depth for g in removed] == [2, 3]
        assert history.latest.depth == 1
        assert history.truncate(0) == []

    def test_collapse(self, history: History) -> None:
        latest = history.latest
        kept = history.collapse()
        assert len(history) == 1
        assert kept.symbols == latest.symbols
        assert kept.depth == 3
        assert kept.is_root

    def test_find(self, history: History) -> None:
        second = history[1]
        assert history.find(second.id) == second
        assert history.find("missing") is None


class TestRecordingVisitor:
    def test_is_a_visitor(self) -> None:
        assert isinstance(RecordingVisitor(), Visitor)

    def test_visitor_requires_core_actions(self) -> None:
        class Partial(Visitor):
            def set_state(self, generation: Generation) -> None:
                pass

        with pytest.raises(TypeError):
            Partial()  # type: ignore[abstract]

    def test_records_and_counts(self) -> None:
        visitor = RecordingVisitor()
        visitor.set_state(Generation(symbols="F"))
        visitor.init(None)
        visitor.push_stack()
        visitor.draw_line()
        visitor.draw_line()
        visitor.pop_stack()
        visitor.finished()

        assert visitor.actions == ["push_stack", "draw_line", "draw_line", "pop_stack"]
        assert visitor.counts() == {"push_stack": 1, "draw_line": 2, "pop_stack": 1}
        assert visitor.is_balanced
        assert visitor.max_stack_depth == 1

    def test_reset(self) -> None:
        visitor = RecordingVisitor()
        visitor.push_stack()
        visitor.reset()
        assert visitor.events == []
        assert visitor.is_balanced
        assert visitor.max_stack_depth == 0
