"""Standalone CLI for the bookcards ingestion pipeline and catalog.

Usage::

    python -m bookcards.cli ingest "atomic habits"
    python -m bookcards.cli backfill
    python -m bookcards.cli books --page 2 --limit 10

Each command builds its own services from ``.env`` / environment settings,
initializes the SQLite store, runs once and exits with status 0, or 1 when
a bookcards error is raised.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Any

from bookcards.utils.errors import BookcardsError


# ---------------------------------------------------------------------------
# Output formatting
# ---------------------------------------------------------------------------


def _format_ingestion(result: Any) -> str:
    book = result.book
    lines = [
        f"Book:   {book.title} by {book.author} ({book.language})",
        f"Slug:   {result.slug}",
        f"Status: {'created' if result.created else 'existing'}",
        f"Cards:  {len(result.flashcards)}",
        "",
    ]
    for idx, card in enumerate(result.flashcards, start=1):
        lines.append(f"{idx:>3}. Q: {card.question}")
        lines.append(f"     A: {card.answer}")
    return "\n".join(lines)


def _format_backfill(report: Any) -> str:
    lines = [
        "Backfill complete:",
        f"  Scanned:   {report.scanned}",
        f"  Updated:   {report.updated}",
        f"  Unchanged: {report.unchanged}",
        f"  Skipped:   {report.skipped}",
    ]
    if report.skipped_book_ids:
        lines.append(f"  Skipped book ids: {', '.join(str(i) for i in report.skipped_book_ids)}")
    return "\n".join(lines)


def _format_books(books: list[Any]) -> str:
    if not books:
        return "No books."
    return "\n".join(
        f"{book.id:>5}  {book.slug or '-':<40}  {book.title} ({book.author})" for book in books
    )


# ---------------------------------------------------------------------------
# Subcommand handlers
# ---------------------------------------------------------------------------


async def _handle_ingest(args: argparse.Namespace, components: dict[str, Any]) -> int:
    """Run the ingestion pipeline once for ``args.title``."""
    result = await components["pipeline"].ingest(args.title)
    print(_format_ingestion(result))
    return 0


async def _handle_backfill(args: argparse.Namespace, components: dict[str, Any]) -> int:
    """Recompute normalized titles, slugs and languages for every book."""
    report = await components["backfill"].run()
    print(_format_backfill(report))
    return 0


async def _handle_books(args: argparse.Namespace, components: dict[str, Any]) -> int:
    """Print one offset page of books, newest first."""
    books = await components["catalog"].list_books(page=args.page, limit=args.limit)
    print(_format_books(books))
    return 0


_HANDLERS = {
    "ingest": _handle_ingest,
    "backfill": _handle_backfill,
    "books": _handle_books,
}


async def _run(args: argparse.Namespace) -> int:
    from bookcards.main import build_components

    try:
        components = build_components(require_llm=args.command == "ingest")
        await components["book_store"].initialize()
        return await _HANDLERS[args.command](args, components)
    except BookcardsError as exc:
        print(f"Error ({exc.kind}): {exc}", file=sys.stderr)
        return 1


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the bookcards CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m bookcards.cli",
        description="Generate and browse LLM-written book flashcards.",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    ingest_parser = subparsers.add_parser("ingest", help="Generate flashcards for a book title")
    ingest_parser.add_argument("title", help="Book title, at least 3 characters")

    subparsers.add_parser("backfill", help="Recompute legacy normalized titles and slugs")

    books_parser = subparsers.add_parser("books", help="List books, newest first")
    books_parser.add_argument("--page", type=int, default=1, help="Page number (default: 1)")
    books_parser.add_argument("--limit", type=int, default=None, help="Page size (default: 5)")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point: parse the subcommand, run it, exit with its status."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    sys.exit(asyncio.run(_run(args)))


if __name__ == "__main__":
    main()
