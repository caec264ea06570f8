#!/usr/bin/env python3
"""
Example: Deriving and Drawing a Plant

Demonstrates:
- Loading a rule file with GrammarLoader
- Stepping an LSystemSession with DerivationRequests
- Replaying a generation through a custom turtle Visitor

This shows the full pipeline:
RULE FILE -> GRAMMAR -> GENERATIONS -> VISITOR
"""

import math
from pathlib import Path

from morphogen.core.generation import Generation
from morphogen.core.symbols import DrawParams
from morphogen.core.visitor import Visitor
from morphogen.runtime.session import DerivationRequest, LSystemSession

HERE = Path(__file__).parent


class TurtleVisitor(Visitor):
    """Traces a generation as 2D line segments."""

    def __init__(self) -> None:
        self.segments: list[tuple[tuple[float, float], tuple[float, float]]] = []
        self.leaves: list[tuple[float, float]] = []
        self._stack: list[tuple[float, float, float]] = []
        self._x = self._y = 0.0
        self._heading = 90.0
        self._length = 1.0
        self._angle = 25.0

    def set_state(self, generation: Generation) -> None:
        self.segments.clear()
        self.leaves.clear()

    def init(self, draw_params: DrawParams | None) -> None:
        if draw_params is None:
            return
        if draw_params.length is not None:
            self._length = draw_params.length
        _, max_rot = draw_params.rotation_range("z")
        if max_rot is not None:
            self._angle = max_rot

    def draw_line(self) -> None:
        start = (self._x, self._y)
        self._x += self._length * math.cos(math.radians(self._heading))
        self._y += self._length * math.sin(math.radians(self._heading))
        self.segments.append((start, (self._x, self._y)))

    def rotate_positive(self) -> None:
        self._heading += self._angle

    def rotate_negative(self) -> None:
        self._heading -= self._angle

    def push_stack(self) -> None:
        self._stack.append((self._x, self._y, self._heading))

    def pop_stack(self) -> None:
        self._x, self._y, self._heading = self._stack.pop()

    def draw_leaf(self) -> None:
        self.leaves.append((self._x, self._y))


def main():
    print("=" * 60)
    print("L-System Derivation Example")
    print("=" * 60)
    print()

    # =========================================================================
    # Step 1: Load the rule file
    # =========================================================================
    print("Step 1: Loading plant.lsys")
    print("-" * 40)

    session = LSystemSession.from_file(HERE / "plant.lsys")
    grammar = session.grammar
    print(f"  Alphabet: {sorted(grammar.alphabet)}")
    print(f"  Axiom: {grammar.axiom}")
    for symbol, replacement in grammar.replacements.items():
        print(f"    {symbol} -> {replacement}")
    print(f"  Warnings: {len(session.last_result.warnings)}")
    print()

    # =========================================================================
    # Step 2: Derive a few generations
    # =========================================================================
    print("Step 2: Deriving")
    print("-" * 40)

    for _ in range(4):
        session.update(DerivationRequest(iterate=1))
        print(f"  Depth {session.depth}: {len(session.current)} symbols")

    session.update(DerivationRequest(decrement=2))
    print(f"  After stepping back two: depth {session.depth}")
    print()

    # =========================================================================
    # Step 3: Draw with a turtle
    # =========================================================================
    print("Step 3: Drawing")
    print("-" * 40)

    turtle = TurtleVisitor()
    dispatched = session.render(turtle)
    xs = [x for segment in turtle.segments for x, _ in segment]
    ys = [y for segment in turtle.segments for _, y in segment]
    print(f"  Commands dispatched: {dispatched}")
    print(f"  Segments: {len(turtle.segments)}")
    print(f"  Leaves: {len(turtle.leaves)}")
    print(f"  Bounds: x [{min(xs):.2f}, {max(xs):.2f}], y [{min(ys):.2f}, {max(ys):.2f}]")
    print()

    # =========================================================================
    # Step 4: Keep only the latest generation
    # =========================================================================
    print("Step 4: Collapsing history")
    print("-" * 40)

    session.update(DerivationRequest(iterate=2, collapse=True))
    print(f"  Depth: {session.depth}")
    print(f"  Retained generations: {session.engine.generation_count}")
    print()

    print("=" * 60)
    print("Example complete!")
    print("=" * 60)


if __name__ == "__main__":
    main()
