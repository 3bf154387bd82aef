"""
Composite paper identifiers.

A paper id is ``<source>:<externalId>``. Only the first colon separates
the two parts, so DOIs and other external ids may contain colons.

When the source prefix is not a known adapter the external id is routed
by its shape. This is a best-effort guess: an all-digit CrossRef or
OpenAlex key, for example, is taken for a PubMed id.
"""

import re
from typing import NamedTuple, Optional

from ..models.paper import SOURCES

_ARXIV_RE = re.compile(r"^\d{4}\.\d{4,5}")
_PMID_RE = re.compile(r"^\d+$")


class ParsedPaperId(NamedTuple):
    source: str
    external_id: str


def generate_paper_id(source: str, external_id: str) -> str:
    return f"{source}:{external_id}"


def parse_paper_id(paper_id: str) -> ParsedPaperId:
    """Split a paper id on its first colon.

    An id without a colon is treated as a bare external id with an empty
    source.
    """
    source, sep, external_id = paper_id.partition(":")
    if not sep:
        return ParsedPaperId("", paper_id)
    return ParsedPaperId(source, external_id)


def detect_source(external_id: str) -> Optional[str]:
    """Guess the source of an external id from its format."""
    if _ARXIV_RE.match(external_id):
        return "arxiv"
    if _PMID_RE.match(external_id):
        return "pubmed"
    if "/" in external_id:
        return "crossref"
    if external_id.startswith("W"):
        return "openalex"
    return None


def resolve_paper_id(paper_id: str) -> Optional[ParsedPaperId]:
    """Map a paper id to the adapter that owns it.

    A known source prefix wins; otherwise the external id is sniffed.
    Returns None when neither identifies a source.
    """
    parsed = parse_paper_id(paper_id.strip())
    if not parsed.external_id:
        return None
    if parsed.source in SOURCES:
        return parsed

    guessed = detect_source(parsed.external_id)
    if guessed is None:
        return None
    return ParsedPaperId(guessed, parsed.external_id)
