"""Command line interface: list and run pattern demos."""

import argparse
import sys
from typing import List, Optional

from . import registry, simulation
from .config import settings
from .exceptions import PatternCatalogException
from .logging_config import get_logger, setup_logging

logger = get_logger(__name__)

CATEGORIES = [c.value for c in registry.Category]


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    parser.add_argument(
        "--json-logs", action="store_true", default=None, help="Render logs as JSON"
    )
    parser.add_argument(
        "--latency-scale",
        type=float,
        default=None,
        help="Multiplier for simulated latency (0 disables sleeping)",
    )
    parser.add_argument("--seed", type=int, default=None, help="Seed demo randomness")


def _apply_overrides(args: argparse.Namespace) -> None:
    if args.log_level:
        settings.LOG_LEVEL = args.log_level.upper()
    if args.json_logs:
        settings.LOG_JSON = True
    if args.latency_scale is not None:
        if args.latency_scale < 0:
            raise SystemExit("--latency-scale must be >= 0")
        settings.LATENCY_SCALE = args.latency_scale
    if args.seed is not None:
        settings.RANDOM_SEED = args.seed
    simulation.reset_random()
    setup_logging(settings.LOG_LEVEL, settings.LOG_JSON)


def _run_one(demo: registry.Demo) -> bool:
    banner = f" {demo.pattern}: {demo.title} ({demo.name}) "
    print(f"\n{banner:=^72}")
    try:
        registry.run(demo)
        return True
    except PatternCatalogException as e:
        logger.error("Demo failed", demo=demo.name, error=e.message, details=e.details)
    except Exception:
        logger.exception("Demo crashed", demo=demo.name)
    print(f"!! demo {demo.name} failed")
    return False


def cmd_list(args: argparse.Namespace) -> int:
    demos = registry.list_demos(category=args.category, pattern=args.pattern)
    for d in demos:
        print(f"{d.name:<42} {d.pattern:<26} {d.title}")
    print(f"\n{len(demos)} demo(s)")
    return 0


def cmd_run(args: argparse.Namespace) -> int:
    try:
        demos = [registry.get_demo(name) for name in args.names]
    except PatternCatalogException as e:
        print(e.message, file=sys.stderr)
        return 2
    failures = sum(not _run_one(d) for d in demos)
    return 1 if failures else 0


def cmd_run_all(args: argparse.Namespace) -> int:
    demos = registry.list_demos(category=args.category)
    failures = sum(not _run_one(d) for d in demos)
    print(f"\nRan {len(demos)} demo(s), {failures} failed")
    return 1 if failures else 0


def main(argv: Optional[List[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    p = argparse.ArgumentParser(
        prog="pattern-catalog", description="Run design pattern demonstrations"
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    sp = sub.add_parser("list", help="List available demos")
    _add_common(sp)
    sp.add_argument("--category", choices=CATEGORIES)
    sp.add_argument("--pattern", help="Filter by pattern, e.g. 'singleton'")
    sp.set_defaults(func=cmd_list)

    sp = sub.add_parser("run", help="Run one or more demos by name")
    _add_common(sp)
    sp.add_argument("names", nargs="+", metavar="NAME")
    sp.set_defaults(func=cmd_run)

    sp = sub.add_parser("run-all", help="Run every demo")
    _add_common(sp)
    sp.add_argument("--category", choices=CATEGORIES)
    sp.set_defaults(func=cmd_run_all)

    args = p.parse_args(argv)
    _apply_overrides(args)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
