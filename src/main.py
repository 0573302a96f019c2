# src/main.py — v1
"""CLI entry point — complete, cache, check commands.

Usage:
    tabautocomplete complete <file> --offset N [--language L]
    tabautocomplete cache stats|clear
    tabautocomplete check
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from tabautocomplete.version import __version__

if TYPE_CHECKING:
    from tabautocomplete.config.settings import Settings

logger = logging.getLogger(__name__)

# File extension → editor language id.
_LANGUAGE_BY_EXTENSION = {
    ".py": "python",
    ".js": "javascript",
    ".jsx": "javascriptreact",
    ".ts": "typescript",
    ".tsx": "typescriptreact",
    ".java": "java",
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".cc": "cpp",
    ".hpp": "cpp",
    ".cs": "csharp",
    ".go": "go",
    ".rs": "rust",
    ".php": "php",
    ".rb": "ruby",
    ".html": "html",
    ".css": "css",
    ".md": "markdown",
}


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        from tabautocomplete.config.settings import ConfigurationError, load_settings

        settings = load_settings()
    except (ConfigurationError, ValueError) as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 2

    _setup_logging(settings, args.verbose)

    try:
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="tabautocomplete",
        description=f"tabautocomplete v{__version__} — AI code completion pipeline",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- complete ---
    p_complete = subparsers.add_parser(
        "complete", help="Complete a file at a cursor offset",
    )
    p_complete.add_argument("file", type=Path, help="Path to source file")
    p_complete.add_argument(
        "--offset", type=int, default=None,
        help="Cursor offset in characters (default: end of file)",
    )
    p_complete.add_argument(
        "--language", default=None,
        help="Language id (detected from the extension if omitted)",
    )
    p_complete.set_defaults(func=_cmd_complete)

    # --- cache ---
    p_cache = subparsers.add_parser("cache", help="Inspect or clear the snippet cache")
    p_cache.add_argument("action", choices=["stats", "clear"])
    p_cache.set_defaults(func=_cmd_cache)

    # --- check ---
    p_check = subparsers.add_parser("check", help="Test the endpoint connection")
    p_check.set_defaults(func=_cmd_check)

    return parser


async def _cmd_complete(args: argparse.Namespace, settings: Settings) -> int:
    """Print the completion payload as JSON."""
    from tabautocomplete.api.facade import create_service

    file_path: Path = args.file
    if not file_path.is_file():
        logger.error("File not found: %s", file_path)
        return 1

    text = file_path.read_text(encoding="utf-8")
    offset = len(text) if args.offset is None else args.offset
    if not 0 <= offset <= len(text):
        logger.error("Offset %d outside file (0..%d)", offset, len(text))
        return 1
    language = args.language or detect_language(file_path)

    service = create_service(settings)
    await service.start()
    try:
        payload = await service.complete(text, offset, language, str(file_path), "invoke")
    finally:
        await service.close()

    if payload is None:
        print("No suggestion", file=sys.stderr)
        return 3
    print(json.dumps(payload, ensure_ascii=False, indent=2))
    return 0


async def _cmd_cache(args: argparse.Namespace, settings: Settings) -> int:
    """Show statistics for, or empty, the snippet cache."""
    from tabautocomplete.cache.cache_factory import create_snippet_storage
    from tabautocomplete.cache.snippet_cache import SnippetCache

    cache = SnippetCache(
        storage=create_snippet_storage(settings),
        max_snippets=settings.max_snippets,
        retention_hours=settings.retention_period_hours,
    )
    await cache.load()
    try:
        if args.action == "clear":
            count = len(cache)
            await cache.clear()
            print(f"Cleared {count} snippets")
            return 0

        stats = cache.stats()
        print("\nSnippet cache:")
        print(f"  Snippets:   {stats.snippet_count}/{stats.max_snippets}")
        print(f"  Expired:    {stats.expired_count}")
        print(f"  Retention:  {stats.retention_hours}h")
        for language, count in sorted(stats.language_stats.items()):
            print(f"  {language + ':':<11} {count}")
        return 0
    finally:
        await cache.close()


async def _cmd_check(args: argparse.Namespace, settings: Settings) -> int:
    """Test the configured endpoint."""
    from tabautocomplete.llm.client_factory import create_llm_client

    client = create_llm_client(settings)
    try:
        status = await client.test_connection()
    finally:
        await client.close()

    print(f"{'OK' if status.success else 'FAILED'}: {status.message}")
    if status.models:
        print("Models: " + ", ".join(status.models))
    return 0 if status.success else 1


def detect_language(path: Path) -> str:
    """Language id from the file extension ("plaintext" when unknown)."""
    return _LANGUAGE_BY_EXTENSION.get(path.suffix.lower(), "plaintext")


def _setup_logging(settings: Settings, verbose: bool) -> None:
    """Configure logging for CLI usage."""
    from tabautocomplete.logging.logger import setup_logging

    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )


if __name__ == "__main__":
    sys.exit(main())
