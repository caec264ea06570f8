"""
Generations and the history that owns them.

A generation is the symbol buffer produced by zero or more derivations
from the axiom. Generations are immutable once built; the in-progress
buffer of the next generation lives in a GenerationBuilder until it is
frozen.
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field
from ulid import ULID


class Generation(BaseModel):
    """An immutable snapshot of the symbol buffer at one derivation depth."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(default_factory=lambda: str(ULID()))
    depth: int = Field(default=1, ge=1)
    symbols: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    # Ancestor tracking; None for the axiom and after a collapse
    parent_id: str | None = None

    def __len__(self) -> int:
        return len(self.symbols)

    @property
    def is_root(self) -> bool:
        """Check if this generation has no ancestor."""
        return self.parent_id is None

    def detach(self) -> "Generation":
        """Return a copy with the same content and no ancestor."""
        return self.model_copy(update={"parent_id": None})


@dataclass
class GenerationBuilder:
    """
    The next generation while it is being derived.

    Symbol callbacks receive the builder and may inspect or append to the
    buffer. ``read_index`` is the position of the symbol being rewritten in
    the previous generation.
    """

    depth: int
    parent_id: str | None = None
    read_index: int = 0
    buffer: list[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.buffer)

    def emit(self, symbols: Iterable[str]) -> None:
        """Append symbols to the buffer in order."""
        self.buffer.extend(symbols)

    def freeze(self) -> Generation:
        return Generation(
            depth=self.depth,
            symbols="".join(self.buffer),
            parent_id=self.parent_id,
        )


class History:
    """
    Depth-ordered list of generations.

    Grows at the tail under derivation, shrinks at the tail under
    truncation, and can be collapsed to its latest entry.
    """

    def __init__(self) -> None:
        self._generations: list[Generation] = []

    def __len__(self) -> int:
        return len(self._generations)

    def __iter__(self) -> Iterator[Generation]:
        return iter(self._generations)

    def __getitem__(self, index: int) -> Generation:
        return self._generations[index]

    def __bool__(self) -> bool:
        return bool(self._generations)

    @property
    def latest(self) -> Generation:
        if not self._generations:
            raise IndexError("History is empty")
        return self._generations[-1]

    @property
    def total_symbols(self) -> int:
        """Sum of the buffer lengths of all retained generations."""
        return sum(len(g) for g in self._generations)

    def append(self, generation: Generation) -> None:
        if self._generations and generation.depth != self.latest.depth + 1:
            raise ValueError(
                f"Generation depth {generation.depth} does not follow {self.latest.depth}"
            )
        self._generations.append(generation)

    def truncate(self, count: int) -> list[Generation]:
        """Remove and return the latest ``count`` generations."""
        if count <= 0:
            return []
        removed = self._generations[-count:]
        del self._generations[-count:]
        return removed

    def collapse(self) -> Generation:
        """Keep only the latest generation, detached from its ancestors."""
        kept = self.latest.detach()
        self._generations = [kept]
        return kept

    def find(self, generation_id: str) -> Generation | None:
        """Look up a retained generation by ID."""
        for generation in self._generations:
            if generation.id == generation_id:
                return generation
        return None

    def snapshot(self) -> tuple[Generation, ...]:
        return tuple(self._generations)
