"""
Command line entry point: recognize text in one or more images.
"""

import argparse
import asyncio
import json
import sys
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.table import Table

from .utils.logging import setup_logging

setup_logging(verbose=False)

from .config.ocr_config import OCRSettings, RECTANGLE_FIELDS  # noqa: E402
from .errors import OCRError  # noqa: E402
from .schemas.status import StatusNotice  # noqa: E402
from .services.node import create_ocr_node  # noqa: E402

console = Console()
err_console = Console(stderr=True)


def parse_parameter(value: str) -> tuple:
    """Parse a KEY=VALUE engine parameter."""
    key, sep, param = value.partition("=")
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got '{value}'")
    return key, param


def parse_rectangle(value: str) -> Dict[str, int]:
    """Parse an L,T,W,H rectangle."""
    parts = value.split(",")
    if len(parts) != 4:
        raise argparse.ArgumentTypeError(f"expected LEFT,TOP,WIDTH,HEIGHT, got '{value}'")
    try:
        return dict(zip(RECTANGLE_FIELDS, (int(p) for p in parts)))
    except ValueError:
        raise argparse.ArgumentTypeError(f"rectangle values must be integers: '{value}'")


def build_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Collect request overrides from parsed arguments."""
    overrides: Dict[str, Any] = {}
    if args.lang:
        overrides["language"] = args.lang
    if args.param:
        overrides["parameters"] = dict(args.param)
    if args.rect:
        overrides["rectangle"] = args.rect
    if args.pool_size is not None:
        overrides["pool_size"] = args.pool_size
    if args.timeout_ms is not None:
        overrides["timeout_ms"] = args.timeout_ms
    if args.strict_rectangle:
        overrides["strict_rectangle"] = True
    return overrides


def _print_status(notice: StatusNotice) -> None:
    if notice.text:
        err_console.print(f"[dim]{notice.text}[/]")


async def run(args: argparse.Namespace) -> int:
    """
    Recognize every source concurrently through one node.

    Returns:
        Process exit code: 0 if all sources succeeded, 1 otherwise
    """
    overrides = build_overrides(args)
    status = _print_status if args.verbose else None

    try:
        settings = OCRSettings.from_env()
        if args.engine:
            settings.engine = args.engine
        node = create_ocr_node(settings=settings, status=status)
    except OCRError as e:
        err_console.print(f"[red]{e.kind}: {e.message}[/]")
        return 1
    except ValueError as e:
        err_console.print(f"[red]{e}[/]")
        return 1

    async with node:
        results = await asyncio.gather(
            *(
                node.handle({"payload": source, "zocrConfig": dict(overrides)})
                for source in args.sources
            ),
            return_exceptions=True,
        )

    failures = 0
    rows: List[Dict[str, Any]] = []
    for source, outcome in zip(args.sources, results):
        if isinstance(outcome, OCRError):
            failures += 1
            rows.append({"source": source, "error": outcome.to_dict()})
        elif isinstance(outcome, BaseException):
            raise outcome
        else:
            rows.append({"source": source, "result": outcome["payload"]})

    if args.json:
        console.print_json(json.dumps(rows))
    else:
        _print_table(rows, show_header=not args.quiet)

    return 1 if failures else 0


def _print_table(rows: List[Dict[str, Any]], show_header: bool = True) -> None:
    table = Table(show_header=show_header, header_style="bold")
    table.add_column("Source")
    table.add_column("Text")
    table.add_column("Confidence", justify="right")

    for row in rows:
        if "error" in row:
            error = row["error"]
            table.add_row(row["source"], f"[red]{error['kind']}: {error['message']}[/]", "-")
        else:
            result = row["result"]
            table.add_row(row["source"], result["text"], f"{result['confidence']:.2f}")

    console.print(table)


def cli(argv: Optional[List[str]] = None) -> None:
    """CLI entry point with argument parsing."""
    parser = argparse.ArgumentParser(
        description="Recognize text in images with a pool of OCR engines",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "sources",
        nargs="+",
        help="Image file paths, http(s) URLs or data URLs",
    )
    parser.add_argument("--lang", type=str, help="Language code (default from ZOCR_LANG)")
    parser.add_argument(
        "--engine",
        type=str,
        choices=["tesseract", "easyocr", "auto"],
        help="OCR engine (default from ZOCR_ENGINE)",
    )
    parser.add_argument("--pool-size", type=int, help="Number of engines (1-4)")
    parser.add_argument("--timeout-ms", type=int, help="Recognition timeout, <=0 disables")
    parser.add_argument(
        "--param",
        type=parse_parameter,
        action="append",
        metavar="KEY=VALUE",
        help="Engine parameter, may be repeated",
    )
    parser.add_argument(
        "--rect",
        type=parse_rectangle,
        metavar="L,T,W,H",
        help="Restrict recognition to a rectangle",
    )
    parser.add_argument(
        "--strict-rectangle",
        action="store_true",
        help="Fail on a malformed rectangle instead of using the full image",
    )
    parser.add_argument("--json", action="store_true", help="Print results as JSON")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output with detailed logs",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Only print results, without table header or logs",
    )

    args = parser.parse_args(argv)

    if args.verbose and args.quiet:
        parser.error("Cannot use both --verbose and --quiet")

    if args.verbose:
        setup_logging(verbose=True)
    elif args.quiet:
        setup_logging(quiet=True)

    try:
        exit_code = asyncio.run(run(args))
    except KeyboardInterrupt:
        exit_code = 130

    sys.exit(exit_code)


if __name__ == "__main__":
    cli()
