# src/main.py - v2
"""CLI entry point: pdf and images commands.

Usage:
    docscribe pdf <file> [options]
    docscribe images <file> [<file> ...] [options]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import math
import sys
from pathlib import Path

from docscribe.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    _setup_logging(args.verbose)

    try:
        return asyncio.run(args.func(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="docscribe",
        description=f"docscribe v{__version__} - adaptive scanned-document transcription",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )
    common.add_argument(
        "-o", "--output", type=Path, default=None,
        help="Write the transcription here instead of stdout",
    )
    common.add_argument(
        "--prompt", default=None,
        help="Additional transcription instruction (default: built-in prompt)",
    )
    common.add_argument(
        "--model-tier", choices=["flash", "pro"], default=None,
        help="Pin a model tier instead of automatic profile escalation",
    )
    common.add_argument(
        "--no-cache", action="store_true",
        help="Bypass the result cache",
    )

    subparsers = parser.add_subparsers(dest="command")

    p_pdf = subparsers.add_parser("pdf", parents=[common], help="Transcribe a PDF")
    p_pdf.add_argument("file", type=Path, help="Path to PDF")
    p_pdf.set_defaults(func=_cmd_pdf)

    p_images = subparsers.add_parser(
        "images", parents=[common], help="Transcribe ordered page images",
    )
    p_images.add_argument("files", type=Path, nargs="+", help="Page images, in order")
    p_images.set_defaults(func=_cmd_images)

    return parser


async def _cmd_pdf(args: argparse.Namespace) -> int:
    """Transcribe one PDF."""
    from docscribe.config.profiles import DEFAULT_PDF_PROMPT
    from docscribe.core.models import PdfDocument

    file_path: Path = args.file
    if not file_path.exists():
        logger.error("File not found: %s", file_path)
        return 1

    document = PdfDocument.from_path(file_path)
    logger.info("Transcribing %s (%s)", document.name, format_file_size(document.size))

    analyzer = _analyzer(args)
    stream = analyzer.analyze_pdf_stream(
        document,
        args.prompt if args.prompt is not None else DEFAULT_PDF_PROMPT,
        _model_tier(args),
        on_event=_print_event,
    )
    await _write_stream(stream, args.output)
    return 0


async def _cmd_images(args: argparse.Namespace) -> int:
    """Transcribe an ordered image sequence."""
    from docscribe.config.profiles import DEFAULT_IMAGE_PROMPT
    from docscribe.core.models import ImageDocument

    missing = [p for p in args.files if not p.exists()]
    if missing:
        logger.error("File not found: %s", ", ".join(str(p) for p in missing))
        return 1

    images = [ImageDocument.from_path(p) for p in args.files]
    analyzer = _analyzer(args)
    stream = analyzer.analyze_image_sequence_stream(
        images,
        args.prompt if args.prompt is not None else DEFAULT_IMAGE_PROMPT,
        _model_tier(args),
        on_event=_print_event,
    )
    await _write_stream(stream, args.output)
    return 0


def _analyzer(args: argparse.Namespace):
    from docscribe.api.facade import build_analyzer
    from docscribe.config.settings import Settings

    settings = Settings(cache_enabled=False) if args.no_cache else Settings()
    return build_analyzer(settings)


def _model_tier(args: argparse.Namespace):
    from docscribe.config.profiles import ModelTier

    return ModelTier(args.model_tier) if args.model_tier else None


async def _write_stream(stream, output: Path | None) -> None:
    """Write chunks as they arrive to the output file or stdout."""
    if output is None:
        async for chunk in stream:
            sys.stdout.write(chunk)
            sys.stdout.flush()
        sys.stdout.write("\n")
        return

    output.parent.mkdir(parents=True, exist_ok=True)
    with output.open("w", encoding="utf-8") as fh:
        async for chunk in stream:
            fh.write(chunk)
    logger.info("Wrote %s", output)


def _print_event(event) -> None:
    """Print lifecycle events to stderr."""
    line = f"[{event.type}] {event.message}"
    if event.quality_score is not None:
        line += f" (quality {event.quality_score:.2f})"
    print(line, file=sys.stderr)


def format_file_size(size: int) -> str:
    """Human-readable byte size (Bytes, KB, MB, GB)."""
    if size <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    index = min(int(math.floor(math.log(size, 1024))), len(units) - 1)
    value = round(size / (1024 ** index), 2)
    return f"{value:g} {units[index]}"


def _setup_logging(verbose: bool) -> None:
    """Configure logging for CLI usage."""
    from docscribe.config.settings import Settings
    from docscribe.logging.logger import setup_logging

    settings = Settings()
    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )
    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


if __name__ == "__main__":
    sys.exit(main())
