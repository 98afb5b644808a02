"""
------------------------------------------------------------------------------
Project:        ResearchKB
File:           main.py
Version:        1.0.0
Description:    Command line entry point. Loads configuration, sets up
                logging and dispatches the store / retrieve / export
                subcommands against the local knowledge base.
------------------------------------------------------------------------------
"""

import argparse
import json
import sys
from typing import List, Optional

from researchkb.config import AppConfig
from researchkb.errors import KnowledgeBaseError
from researchkb.exporter import EXPORT_FORMATS
from researchkb.logger import setup_logging, get_logger
from researchkb.models import ItemType, KnowledgeBaseConfig, QueryOptions, QueryResult
from researchkb.store import KnowledgeStore


def _truncate(text: str, width: int) -> str:
    if len(text) > width:
        return text[: width - 3] + "..."
    return text


def format_results(results: List[QueryResult], as_json: bool = False) -> str:
    """Renders retrieval results as an aligned table or indented JSON."""
    if as_json:
        return json.dumps([r.model_dump(mode="json") for r in results], indent=2, ensure_ascii=False)

    if not results:
        return "No results found."

    lines = [
        f"{'Rank':<4}  {'Type':<10}  {'Content':<50}  {'Paper':<20}  {'Section':<10}  Page",
        "-" * 112,
    ]
    for rank, r in enumerate(results, start=1):
        lines.append(
            f"{rank:<4}  {r.type.value:<10}  {_truncate(r.content, 50):<50}  "
            f"{_truncate(r.paper_id, 20):<20}  {_truncate(r.section, 10):<10}  {r.page}"
        )
    lines.append("")
    lines.append(f"{len(results)} results")
    return "\n".join(lines)


def _add_filter_flags(parser: argparse.ArgumentParser, with_limit: bool = True) -> None:
    parser.add_argument("terms", nargs="*", help="full-text search terms")
    parser.add_argument("--query", default="", help="full-text search query")
    parser.add_argument("--type", choices=[t.value for t in ItemType], help="filter by item type")
    parser.add_argument("--tag", action="append", default=[], help="filter by tag (repeat for AND)")
    parser.add_argument("--paper", default="", help="filter by paper ID")
    if with_limit:
        parser.add_argument("--limit", type=int, default=0, help="maximum results (0 = use default)")


def build_parser(app_config: Optional[AppConfig] = None) -> argparse.ArgumentParser:
    defaults = app_config.knowledge_base_config() if app_config else KnowledgeBaseConfig()

    parser = argparse.ArgumentParser(prog="researchkb", description="ResearchKB - local knowledge base")
    parser.add_argument("-P", "--profile", type=str, help="configuration profile for isolation")
    parser.add_argument("--knowledge-dir", default=defaults.knowledge_dir,
                        help="base directory for knowledge (contains extracted/, index/)")
    parser.add_argument("--papers-dir", default=defaults.papers_dir,
                        help="base directory for papers (contains metadata/, markdown/)")
    parser.add_argument("--max-results", type=int, default=defaults.max_results,
                        help="default maximum number of query results")
    parser.add_argument("--log-level", default=None, help="log level (DEBUG, INFO, WARNING, ERROR)")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("store", help="ingest extracted knowledge items into the knowledge base")

    retrieve = sub.add_parser("retrieve", help="query with full-text search and filters")
    _add_filter_flags(retrieve)
    retrieve.add_argument("--trace", default="", help="show source context for an item ID")
    retrieve.add_argument("--json", action="store_true", help="output results as JSON")

    export = sub.add_parser("export", help="export the knowledge base to YAML or JSON")
    _add_filter_flags(export, with_limit=False)
    export.add_argument("--format", default="yaml", choices=EXPORT_FORMATS, help="export format")

    return parser


def query_options_from_args(args: argparse.Namespace) -> QueryOptions:
    query = args.query or " ".join(args.terms)
    return QueryOptions(
        query=query,
        type=args.type,
        tags=args.tag,
        paper_id=args.paper,
        max_results=getattr(args, "limit", 0),
    )


def run_store(store: KnowledgeStore) -> int:
    def progress(status: str, paper_id: str, detail: str) -> None:
        print(f"{status:<8} {paper_id} {detail}".rstrip())

    summary = store.ingest(progress_callback=progress)
    print()
    print(summary)
    if summary.failed > 0:
        print(f"{summary.failed} paper(s) failed indexing", file=sys.stderr)
        return 1
    return 0


def run_retrieve(store: KnowledgeStore, args: argparse.Namespace) -> int:
    if args.trace:
        print(store.trace(args.trace))
        return 0

    opts = query_options_from_args(args)
    if opts.is_empty():
        print("query or filter required: provide a search query, --type, --tag, or --paper", file=sys.stderr)
        return 2

    print(format_results(store.retrieve(opts), as_json=args.json))
    return 0


def run_export(store: KnowledgeStore, args: argparse.Namespace) -> int:
    path = store.export(query_options_from_args(args), fmt=args.format)
    print(f"Exported to {path}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    ResearchKB Entry Point.
    """
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument("-P", "--profile", type=str)
    known, _ = pre.parse_known_args(argv)

    app_config = AppConfig(profile=known.profile)
    args = build_parser(app_config).parse_args(argv)

    setup_logging(
        level=args.log_level or app_config.get_log_level(),
        log_file=str(app_config.get_log_file_path()),
        component_levels=app_config.get_log_components()
    )
    logger = get_logger("cli")
    logger.info(f"ResearchKB started (Profile: {args.profile or 'default'}, command: {args.command})")

    config = KnowledgeBaseConfig(
        knowledge_dir=args.knowledge_dir,
        papers_dir=args.papers_dir,
        max_results=args.max_results,
    )

    try:
        with KnowledgeStore(config) as store:
            if args.command == "store":
                return run_store(store)
            if args.command == "retrieve":
                return run_retrieve(store, args)
            return run_export(store, args)
    except KnowledgeBaseError as e:
        logger.error(str(e))
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
