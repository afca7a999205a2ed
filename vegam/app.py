"""Command-line entry point: build a practice plan from stored history."""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

import yaml

from vegam.core.config import load_config
from vegam.core.content import ContentRepository
from vegam.core.engine import AnalyticsEngine
from vegam.core.errors import CollaboratorUnavailable
from vegam.core.history import JsonSessionHistory
from vegam.core.layout import LayoutRepository


def configure_logging(verbose: bool = False) -> None:
    """Configure application-wide logging with a standard format."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="vegam", description="Typing performance analytics")
    parser.add_argument("--user", required=True, help="user id whose history to analyse")
    parser.add_argument("--layout", default="qwerty", help="keyboard layout id")
    parser.add_argument("--history", type=Path, help="history directory (default ~/.vegam/history)")
    parser.add_argument("--config", type=Path, help="YAML file overriding policy constants")
    parser.add_argument("--no-save", action="store_true", help="do not store the generated plan")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def run(argv: Optional[List[str]] = None) -> int:
    """Analyse a user's history, print the plan summary as YAML and store it."""
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    history = JsonSessionHistory(args.history)
    engine = AnalyticsEngine(
        config=load_config(args.config),
        layouts=LayoutRepository(),
        content=ContentRepository(),
        history=history,
    )
    try:
        plan = engine.generate_adaptive_training(args.user, args.layout)
        sessions = history.get_session_history(args.user, args.layout)
        letters = engine.analyze_letter_performance(sessions, args.layout)
        heatmap = engine.generate_heatmap(letters, args.layout)
    except CollaboratorUnavailable as e:
        logging.error("%s", e)
        return 1

    summary = {
        "focus_characters": list(plan.focus_characters),
        "difficulty_level": plan.difficulty_level,
        "priority": plan.priority,
        "estimated_practice_minutes": plan.estimated_practice_minutes,
        "exercises": [ex.name for ex in plan.custom_exercises],
        "needs_practice": [cell.character for cell in heatmap if cell.practice_needed],
    }
    sys.stdout.write(yaml.safe_dump(summary, sort_keys=False, allow_unicode=True))

    if not args.no_save:
        history.save_plan(plan)
    return 0


if __name__ == "__main__":
    sys.exit(run())
