"""
LSystemSession: drives an engine from explicit requests.

An interactive front end does not flip shared flags to ask for more
depth or a reload. It builds a DerivationRequest per frame and passes it
to ``update``, which reports whether the geometry must be rebuilt.
"""

from pathlib import Path
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field

from morphogen.core.engine import LSystem
from morphogen.core.generation import Generation
from morphogen.core.grammar import Grammar
from morphogen.core.symbols import DrawParams
from morphogen.core.visitor import Visitor
from morphogen.loader.diagnostics import LoadResult
from morphogen.loader.importer import GrammarLoader

logger = structlog.get_logger()


class DerivationRequest(BaseModel):
    """
    Changes requested for one update.

    Applied in order: reload, decrement, iterate, collapse.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    iterate: int = Field(default=0, ge=0)
    decrement: int = Field(default=0, ge=0)
    collapse: bool = False
    reload: bool = False

    @property
    def is_noop(self) -> bool:
        return not (self.iterate or self.decrement or self.collapse or self.reload)


class LSystemSession:
    """A grammar source plus the engine currently deriving it."""

    def __init__(
        self,
        source: str,
        *,
        path: Path | None = None,
        loader: GrammarLoader | None = None,
        draw_overrides: DrawParams | None = None,
    ) -> None:
        self._loader = loader or GrammarLoader()
        self._path = path
        self._draw_overrides = draw_overrides
        self._log = logger.bind(component="session", path=str(path) if path else None)

        self._last_result: LoadResult | None = None
        self._engine = self._build_engine(source)
        self._source = source

    @classmethod
    def from_text(cls, source: str, **kwargs: Any) -> "LSystemSession":
        return cls(source, **kwargs)

    @classmethod
    def from_file(cls, path: str | Path, **kwargs: Any) -> "LSystemSession":
        path = Path(path)
        return cls(path.read_text(encoding="utf-8"), path=path, **kwargs)

    # --- Properties ---

    @property
    def engine(self) -> LSystem:
        return self._engine

    @property
    def grammar(self) -> Grammar | None:
        return self._engine.grammar

    @property
    def current(self) -> Generation:
        return self._engine.current

    @property
    def depth(self) -> int:
        return self._engine.depth

    @property
    def last_result(self) -> LoadResult | None:
        """Result of the most recent load, including its warnings."""
        return self._last_result

    # --- Requests ---

    def update(self, request: DerivationRequest) -> bool:
        """
        Apply a request.

        Returns True if the current generation changed and anything built
        from it is stale.
        """
        if request.is_noop:
            return False

        changed = False

        if request.reload:
            self.reload()
            changed = True

        if request.decrement:
            available = self._engine.generation_count - 1
            count = min(request.decrement, available)
            if count < request.decrement:
                self._log.debug(
                    "decrement_limited", requested=request.decrement, applied=count
                )
            if count:
                self._engine.decrement(count)
                changed = True

        if request.iterate:
            self._engine.iterate(request.iterate)
            changed = True

        if request.collapse:
            self._engine.collapse()

        self._log.debug("session_updated", depth=self.depth, changed=changed)
        return changed

    def reload(self, source: str | None = None) -> None:
        """
        Rebuild the engine from new or re-read source text.

        The new engine is derived back to the current depth. If the source
        fails to load the current engine is kept and GrammarLoadError is
        raised.
        """
        if source is None:
            source = self._path.read_text(encoding="utf-8") if self._path else self._source

        depth = self.depth
        engine = self._build_engine(source)
        engine.iterate(depth - 1)

        self._engine = engine
        self._source = source
        self._log.info("session_reloaded", depth=engine.depth)

    def render(self, visitor: Visitor) -> int:
        """Replay the current generation through a visitor."""
        return self._engine.visualize(visitor)

    def _build_engine(self, source: str) -> LSystem:
        result = self._loader.load(source)
        if not result.success:
            self._log.error(
                "session_load_failed",
                errors=[str(e) for e in result.errors],
            )
        grammar = result.unwrap()
        self._last_result = result

        if self._draw_overrides is not None:
            base = grammar.draw_params or DrawParams()
            grammar = grammar.with_draw_params(base.merge(self._draw_overrides))

        return LSystem(grammar)
