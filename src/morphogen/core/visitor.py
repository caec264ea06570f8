"""
Visitor protocol for replaying a generation.

The engine drives a visitor through the symbols of the current
generation. Concrete visitors (2D line builders, 3D tube builders, test
recorders) live outside the engine and only need to implement this
interface.
"""

from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass, field

from morphogen.core.generation import Generation
from morphogen.core.symbols import DrawParams


class Visitor(ABC):
    """
    Capability set the engine calls during replay.

    Call order per replay:
    - set_state(generation)
    - init(draw_params)
    - one action call per bound symbol, in buffer order
    - finished()

    The five core actions are required. The remaining hooks default to
    no-ops.
    """

    @abstractmethod
    def set_state(self, generation: Generation) -> None:
        """Receive the generation about to be replayed."""
        ...

    def init(self, draw_params: DrawParams | None) -> None:
        """Called once before the first action. Override for custom behavior."""

    @abstractmethod
    def draw_line(self) -> None: ...

    @abstractmethod
    def rotate_positive(self) -> None: ...

    @abstractmethod
    def rotate_negative(self) -> None: ...

    @abstractmethod
    def push_stack(self) -> None: ...

    @abstractmethod
    def pop_stack(self) -> None: ...

    # --- Optional hooks ---

    def draw_leaf(self) -> None:
        """Called for LEAF symbols. Override for custom behavior."""

    def rotate(self) -> None:
        """Called for ROTATE symbols. Override for custom behavior."""

    def custom(self) -> None:
        """Called for CUSTOM symbols. Override for custom behavior."""

    def finished(self) -> None:
        """Called once after the last action. Override for custom behavior."""


@dataclass
class RecordingVisitor(Visitor):
    """Visitor that records every call it receives."""

    events: list[str] = field(default_factory=list)
    generation: Generation | None = None
    draw_params: DrawParams | None = None
    max_stack_depth: int = 0
    _stack_depth: int = field(default=0, init=False, repr=False)

    def set_state(self, generation: Generation) -> None:
        self.generation = generation
        self.events.append("set_state")

    def init(self, draw_params: DrawParams | None) -> None:
        self.draw_params = draw_params
        self.events.append("init")

    def draw_line(self) -> None:
        self.events.append("draw_line")

    def rotate_positive(self) -> None:
        self.events.append("rotate_positive")

    def rotate_negative(self) -> None:
        self.events.append("rotate_negative")

    def push_stack(self) -> None:
        self._stack_depth += 1
        self.max_stack_depth = max(self.max_stack_depth, self._stack_depth)
        self.events.append("push_stack")

    def pop_stack(self) -> None:
        self._stack_depth -= 1
        self.events.append("pop_stack")

    def draw_leaf(self) -> None:
        self.events.append("draw_leaf")

    def rotate(self) -> None:
        self.events.append("rotate")

    def custom(self) -> None:
        self.events.append("custom")

    def finished(self) -> None:
        self.events.append("finished")

    @property
    def actions(self) -> list[str]:
        """Recorded events without the set_state/init/finished framing."""
        return [e for e in self.events if e not in ("set_state", "init", "finished")]

    @property
    def is_balanced(self) -> bool:
        """Check if every push was matched by a pop."""
        return self._stack_depth == 0

    def counts(self) -> dict[str, int]:
        return dict(Counter(self.actions))

    def reset(self) -> None:
        self.events.clear()
        self.generation = None
        self.draw_params = None
        self.max_stack_depth = 0
        self._stack_depth = 0
