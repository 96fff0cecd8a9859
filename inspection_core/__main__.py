"""CLI entry point: ``python -m inspection_core {classify,score,odometer}``."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, List, Optional

import structlog
from pydantic import ValidationError

EXIT_BAD_INPUT = 2


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def _load_defects(path: Path) -> list:
    """Read a JSON defect list, or an inspection object with a ``defects`` key."""
    from inspection_core.schemas import Defect

    with open(path, encoding="utf-8") as fh:
        raw = json.load(fh)
    if isinstance(raw, dict):
        raw = raw.get("defects") or []
    if not isinstance(raw, list):
        raise ValueError(f"Expected a list of defects in {path}")
    return [Defect.model_validate(item) for item in raw]


def _cmd_classify(args: argparse.Namespace, rules) -> int:
    from inspection_core.defect_classifier import explain

    trace = explain(args.category, args.description, rules=rules)
    if args.explain:
        _print_json(trace.to_dict())
    else:
        _print_json({"severity": trace.severity.value})
    return 0


def _cmd_score(args: argparse.Namespace, rules) -> int:
    from inspection_core.status_resolver import resolve

    logger = structlog.get_logger("inspection_core")
    try:
        defects = _load_defects(Path(args.file))
    except (OSError, ValueError, ValidationError) as exc:
        # json.JSONDecodeError is a ValueError.
        logger.error("score_input_unreadable", file=args.file, error=str(exc))
        return EXIT_BAD_INPUT

    _print_json(resolve(defects, rules=rules).to_dict())
    return 0


def _cmd_odometer(args: argparse.Namespace, rules) -> int:
    from inspection_core.odometer import detect_odometer_anomaly

    if args.days < 0:
        structlog.get_logger("inspection_core").error(
            "odometer_input_invalid", days=args.days, error="DAYS must be >= 0"
        )
        return EXIT_BAD_INPUT
    _print_json(detect_odometer_anomaly(args.previous, args.current, args.days).to_dict())
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="inspection_core",
        description="Vehicle inspection defect classification tools",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_classify = sub.add_parser("classify", help="Classify one defect")
    p_classify.add_argument("--category", required=True)
    p_classify.add_argument("--description", default="")
    p_classify.add_argument(
        "--explain",
        action="store_true",
        help="Print the matched rule and keyword hits",
    )
    p_classify.set_defaults(handler=_cmd_classify)

    p_score = sub.add_parser("score", help="Score and resolve a JSON defect list")
    p_score.add_argument("file", help="JSON inspection or list of defects")
    p_score.set_defaults(handler=_cmd_score)

    p_odo = sub.add_parser("odometer", help="Check two odometer readings")
    p_odo.add_argument("previous", type=float)
    p_odo.add_argument("current", type=float)
    p_odo.add_argument("days", type=float)
    p_odo.set_defaults(handler=_cmd_odometer)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    # Load settings from env / .env file.
    from inspection_core.config import CoreSettings
    from inspection_core.defect_classifier import load_rules
    from inspection_core.logging_config import configure_logging

    settings = CoreSettings()
    configure_logging(settings.log_level, settings.log_format)

    rules = None
    if settings.rules_path is not None:
        try:
            rules = load_rules(settings.rules_path)
        except (OSError, ValueError) as exc:
            structlog.get_logger("inspection_core").error(
                "rules_unreadable", path=str(settings.rules_path), error=str(exc)
            )
            return EXIT_BAD_INPUT

    return args.handler(args, rules)


if __name__ == "__main__":
    sys.exit(main())
