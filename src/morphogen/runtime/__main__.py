"""
Entry point for deriving an L-system from a rule file.

Usage:
    python -m morphogen.runtime rules.lsys --iterations 5
    morphogen rules.lsys --iterations 5 --collapse --show-symbols
"""

import argparse
import sys
from collections.abc import Sequence
from typing import NoReturn

import structlog
from pydantic import ValidationError

from morphogen import __version__
from morphogen.core.visitor import RecordingVisitor
from morphogen.loader.diagnostics import GrammarLoadError
from morphogen.runtime.config import RuntimeSettings, configure_logging
from morphogen.runtime.session import DerivationRequest, LSystemSession

logger = structlog.get_logger()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="morphogen",
        description="Derive an L-system from a rule file and summarise its drawing commands.",
    )
    parser.add_argument("rule_file", help="path to the rule file")
    parser.add_argument("-n", "--iterations", type=int, default=4)
    parser.add_argument(
        "--collapse",
        action="store_true",
        help="discard intermediate generations after deriving",
    )
    parser.add_argument(
        "--show-symbols",
        action="store_true",
        help="print the final generation to stdout",
    )
    parser.add_argument("--length", type=float, help="override DrawInfo LENGTH")
    parser.add_argument("--width", type=float, help="override DrawInfo WIDTH")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def parse_settings(argv: Sequence[str] | None = None) -> RuntimeSettings:
    args = build_parser().parse_args(argv)
    return RuntimeSettings(
        rule_file=args.rule_file,
        iterations=args.iterations,
        collapse=args.collapse,
        show_symbols=args.show_symbols,
        log_level=args.log_level,
        length=args.length,
        width=args.width,
    )


def run(argv: Sequence[str] | None = None) -> int:
    """Run one derivation. Returns the process exit code."""
    try:
        settings = parse_settings(argv)
    except ValidationError as e:
        print(f"morphogen: invalid arguments\n{e}", file=sys.stderr)
        return 2

    configure_logging(settings.log_level)
    log = logger.bind(rule_file=str(settings.rule_file))

    try:
        session = LSystemSession.from_file(
            settings.rule_file, draw_overrides=settings.draw_overrides
        )
    except OSError as e:
        log.error("rule_file_unreadable", error=str(e))
        return 1
    except GrammarLoadError as e:
        for diagnostic in e.diagnostics:
            log.error("grammar_diagnostic", section=diagnostic.section, detail=diagnostic.message)
        return 1

    session.update(DerivationRequest(iterate=settings.iterations, collapse=settings.collapse))

    visitor = RecordingVisitor()
    dispatched = session.render(visitor)
    log.info(
        "derivation_summary",
        depth=session.depth,
        length=len(session.current),
        retained_generations=session.engine.generation_count,
        dispatched=dispatched,
        balanced=visitor.is_balanced,
        **visitor.counts(),
    )

    if settings.show_symbols:
        print(session.current.symbols)
    return 0


def main() -> NoReturn:
    """Main entry point."""
    try:
        sys.exit(run())
    except KeyboardInterrupt:
        logger.info("interrupted")
        sys.exit(130)


if __name__ == "__main__":
    main()
