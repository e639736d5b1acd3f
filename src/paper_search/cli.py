"""Command-line entry point: build an index from a remote host and query it."""

# ruff: noqa: T201  # CLI intentionally prints operator feedback

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Sequence
import sys
import textwrap

from opentelemetry.sdk.trace.export import ConsoleSpanExporter
import orjson
from pydantic import ValidationError

from paper_search.config import Settings
from paper_search.domain.index_status import IndexStatus, ManifestUnavailableError, MissingConfigurationError, Progress
from paper_search.domain.model import PaperListing
from paper_search.observability import configure_logging, get_metrics, init_tracing
from paper_search.search.snippet import highlight
from paper_search.service_layer.search_service import ResultPage, SearchSession


EXAMPLES = """
Examples:
  paper-search --manifest-url https://host/manifest.json --base-url https://host/articles/ "bone density"
  paper-search '"zero gravity"' --page 2 --page-size 5
  MANIFEST_URL=... BASE_URL=... paper-search mars --json
  paper-search --browse soil
"""


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="paper-search",
        description="Index a remote corpus of plain-text papers and run a ranked search, or browse it by title",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=EXAMPLES.strip(),
    )
    parser.add_argument(
        "query",
        nargs="*",
        help="Search query (wrap in double quotes for an exact phrase), or title filter with --browse",
    )
    parser.add_argument("--browse", action="store_true", help="List papers by title instead of searching")
    parser.add_argument("--manifest-url", help="Override MANIFEST_URL")
    parser.add_argument("--base-url", help="Override BASE_URL")
    parser.add_argument("--concurrency", type=int, help="Concurrency hint for fetch workers (clamped to 2-8)")
    parser.add_argument("--page", type=int, default=1, help="1-based result page (default: 1)")
    parser.add_argument("--page-size", type=int, default=10, help="Results per page (default: 10)")
    parser.add_argument("--json", action="store_true", help="Print the page as JSON")
    parser.add_argument("--no-highlight", action="store_true", help="Do not mark matches in titles and excerpts")
    parser.add_argument("--quiet", action="store_true", help="Suppress progress output")
    parser.add_argument("--metrics", action="store_true", help="Print Prometheus metrics to stderr after the search")
    parser.add_argument("--trace", action="store_true", help="Print finished OpenTelemetry spans to stderr")
    parser.add_argument("--log-level", help="Override LOG_LEVEL")
    return parser


def build_settings(args: argparse.Namespace) -> Settings:
    overrides = {
        "manifest_url": args.manifest_url,
        "base_url": args.base_url,
        "concurrency": args.concurrency,
        "log_level": args.log_level,
    }
    return Settings(**{key: value for key, value in overrides.items() if value is not None})


def _progress_printer(progress: Progress) -> None:
    print(f"\rIndexing {progress.done}/{progress.total}", end="", file=sys.stderr, flush=True)
    if progress.is_complete:
        print(file=sys.stderr)


def render_page(page: ResultPage, query: str, *, mark: bool = True) -> str:
    if not page.results:
        return "No results."

    lines = [f"Page {page.page} of {page.total_pages} ({page.total_results} results)", ""]
    offset = (page.page - 1) * page.page_size
    for position, result in enumerate(page.results, start=offset + 1):
        title = highlight(result.title, query, "**", "**", escape=False) if mark else result.title
        excerpt = highlight(result.excerpt, query, "**", "**", escape=False) if mark else result.excerpt
        lines.append(f"{position}. {title}  [score={result.score} matches={result.matches}]")
        lines.append(textwrap.indent(textwrap.fill(excerpt, width=100), "   "))
        lines.append("")
    return "\n".join(lines).rstrip()


def render_listing(listings: Sequence[PaperListing]) -> str:
    if not listings:
        return "No papers."

    lines = []
    for position, listing in enumerate(listings, start=1):
        details = ", ".join(part for part in (listing.authors, listing.year) if part)
        lines.append(f"{position}. {listing.title}" + (f"  ({details})" if details else ""))
    return "\n".join(lines)


async def run_browse(settings: Settings, title_filter: str, args: argparse.Namespace) -> int:
    async with SearchSession(settings) as session:
        try:
            listings = await session.browse(title_filter)
        except (MissingConfigurationError, ManifestUnavailableError) as exc:
            print(f"Browsing failed: {exc}", file=sys.stderr)
            return 1

    if args.json:
        print(orjson.dumps([listing.model_dump() for listing in listings], option=orjson.OPT_INDENT_2).decode("utf-8"))
    else:
        print(render_listing(listings))
    return 0


async def run_search(settings: Settings, query: str, args: argparse.Namespace) -> int:
    async with SearchSession(settings) as session:
        if not args.quiet:
            session.subscribe(_progress_printer)
        status = await session.run()
        if status is IndexStatus.ERROR:
            print(f"Indexing failed: {session.error_message}", file=sys.stderr)
            return 1

        page = session.search_page(query, page=args.page, page_size=args.page_size)

    if args.json:
        payload = {
            "query": query,
            "page": page.page,
            "total_pages": page.total_pages,
            "total_results": page.total_results,
            "results": [result.model_dump() for result in page.results],
        }
        print(orjson.dumps(payload, option=orjson.OPT_INDENT_2).decode("utf-8"))
    else:
        print(render_page(page, query, mark=not args.no_highlight))
    if args.metrics:
        print(get_metrics().decode("utf-8"), file=sys.stderr)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_argument_parser()
    args = parser.parse_args(argv)
    if args.page_size < 1:
        parser.error("--page-size must be at least 1")
    if not args.query and not args.browse:
        parser.error("a query is required unless --browse is given")

    try:
        settings = build_settings(args)
    except ValidationError as exc:
        parser.error(str(exc))

    configure_logging(settings.log_level, json_output=settings.log_json)
    init_tracing(exporter=ConsoleSpanExporter(out=sys.stderr) if args.trace else None)
    text = " ".join(args.query)
    if args.browse:
        return asyncio.run(run_browse(settings, text, args))
    return asyncio.run(run_search(settings, text, args))


if __name__ == "__main__":
    sys.exit(main())
