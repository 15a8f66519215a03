"""
Command line entry point.

    python -m qtut list
    python -m qtut run kerr rabi --out figures
    python -m qtut run --all -v
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402

from qtut.tutorials import TUTORIALS, load  # noqa: E402

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="qtut", description="Run quantum dynamics tutorials and save their figures."
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="list available tutorials")

    run = sub.add_parser("run", help="run tutorials with default parameters")
    run.add_argument("names", nargs="*", metavar="NAME", help=", ".join(TUTORIALS))
    run.add_argument("--all", action="store_true", help="run every tutorial")
    run.add_argument("--out", type=Path, default=Path("figures"), help="output directory")
    run.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def run_tutorial(name: str, out: Path) -> Path:
    module = load(name)
    logger.info("Running %s", name)
    fig = module.plot_default(module.run_default())
    path = out / f"{name}.png"
    fig.savefig(path, bbox_inches="tight", dpi=150)
    plt.close(fig)
    logger.info("Saved %s", path)
    return path


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "list":
        for name in TUTORIALS:
            print(name)
        return 0

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    names = list(TUTORIALS) if args.all else list(args.names)
    if not names:
        parser.error("give at least one tutorial NAME or --all")
    unknown = [n for n in names if n not in TUTORIALS]
    if unknown:
        parser.error(
            f"unknown tutorial(s) {', '.join(unknown)}; choose from {', '.join(TUTORIALS)}"
        )

    args.out.mkdir(parents=True, exist_ok=True)
    for name in names:
        run_tutorial(name, args.out)
    return 0


if __name__ == "__main__":
    sys.exit(main())
