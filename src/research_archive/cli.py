"""
Command line interface for Research Archive.

Every subcommand prints JSON to stdout. Invalid input exits with status 2,
a paper that cannot be found with status 1.
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from .core import ResearchArchive
from .models import CiteRequest, SearchRequest
from .models.request import CITATION_FORMATS, SORT_OPTIONS, parse_sources
from .utils.error_handler import ConfigurationError, PaperNotFoundError, ValidationError
from .utils.logging_config import configure_third_party_loggers, setup_logging

log = logging.getLogger(__name__)

EXIT_NOT_FOUND = 1
EXIT_INVALID = 2


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def _search_payload(args: argparse.Namespace) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "query": args.query,
        "page": args.page,
        "limit": args.limit,
        "sort": args.sort,
    }
    if args.open_access:
        payload["accessType"] = "open"
    sources = parse_sources(args.sources)
    if sources:
        payload["sources"] = sources
    if args.citation_min is not None:
        payload["citationMin"] = args.citation_min
    if args.date_from or args.date_to:
        payload["dateRange"] = {"from": args.date_from, "to": args.date_to}
    return payload


def cmd_search(archive: ResearchArchive, args: argparse.Namespace) -> int:
    request = SearchRequest.from_dict(_search_payload(args))
    result = asyncio.run(archive.search(request))
    for error in result.errors:
        log.warning(f"Source failed: {error}")
    _print_json(result.to_dict())
    return 0


def cmd_quick(archive: ResearchArchive, args: argparse.Namespace) -> int:
    papers = asyncio.run(archive.quick_search(args.query, args.limit))
    _print_json([p.to_dict() for p in papers])
    return 0


def cmd_paper(archive: ResearchArchive, args: argparse.Namespace) -> int:
    paper = asyncio.run(archive.get_paper(args.paper_id))
    if paper is None:
        raise PaperNotFoundError(args.paper_id)
    _print_json(paper.to_dict())
    return 0


def cmd_cite(archive: ResearchArchive, args: argparse.Namespace) -> int:
    request = CiteRequest.from_dict({"paperId": args.paper_id, "format": args.format})
    response = asyncio.run(archive.cite(request))
    if response is None:
        raise PaperNotFoundError(request.paper_id)
    if args.raw:
        print(response.citation)
    else:
        _print_json(response.to_dict())
    return 0


def cmd_featured(archive: ResearchArchive, args: argparse.Namespace) -> int:
    papers = asyncio.run(archive.featured(args.limit))
    _print_json([p.to_dict() for p in papers])
    return 0


def cmd_health(archive: ResearchArchive, args: argparse.Namespace) -> int:
    health = asyncio.run(archive.health())
    _print_json(health.to_dict())
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="research-archive",
        description="Search arXiv, PubMed, CrossRef and OpenAlex from one place.",
    )
    parser.add_argument("--config-dir", default="config", help="Directory holding settings.yaml")
    parser.add_argument("--log-level", default="WARNING", help="Logging level")
    parser.add_argument("--log-file", action="store_true", help="Also write rotating log files under logs/")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("search", help="Unified search across sources")
    p.add_argument("query")
    p.add_argument("--page", type=int, default=1)
    p.add_argument("--limit", type=int, default=20)
    p.add_argument("--sort", choices=SORT_OPTIONS, default="relevance")
    p.add_argument("--sources", help="Comma separated subset, e.g. arxiv,openalex")
    p.add_argument("--open-access", action="store_true", help="Only open access papers")
    p.add_argument("--citation-min", type=float)
    p.add_argument("--from", dest="date_from", help="Earliest publication date (YYYY-MM-DD)")
    p.add_argument("--to", dest="date_to", help="Latest publication date (YYYY-MM-DD)")
    p.set_defaults(func=cmd_search)

    p = sub.add_parser("quick", help="Fast single-source search")
    p.add_argument("query")
    p.add_argument("--limit", type=int)
    p.set_defaults(func=cmd_quick)

    p = sub.add_parser("paper", help="Show one paper with related and citing papers")
    p.add_argument("paper_id", help="Paper id such as arxiv:2301.12345")
    p.set_defaults(func=cmd_paper)

    p = sub.add_parser("cite", help="Format a citation")
    p.add_argument("paper_id")
    p.add_argument("--format", choices=CITATION_FORMATS, default="bibtex")
    p.add_argument("--raw", action="store_true", help="Print only the citation text")
    p.set_defaults(func=cmd_cite)

    p = sub.add_parser("featured", help="Most cited recent papers")
    p.add_argument("--limit", type=int)
    p.set_defaults(func=cmd_featured)

    p = sub.add_parser("health", help="Check upstream availability")
    p.set_defaults(func=cmd_health)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(log_level=args.log_level, file_output=args.log_file)
    configure_third_party_loggers()

    try:
        archive = ResearchArchive.from_config(args.config_dir)
        return args.func(archive, args)
    except ValidationError as e:
        _print_json(e.to_dict())
        return EXIT_INVALID
    except PaperNotFoundError as e:
        _print_json({"error": "Not Found", "message": str(e)})
        return EXIT_NOT_FOUND
    except ConfigurationError as e:
        log.error(f"Invalid configuration: {e}")
        return EXIT_INVALID


if __name__ == "__main__":
    sys.exit(main())
