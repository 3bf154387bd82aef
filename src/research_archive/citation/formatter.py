"""
Citation formatting engine.

Renders a normalized paper as BibTeX, APA (7th edition) or MLA (9th
edition). Formatting is pure: the same paper always yields the same
string, cite key included.
"""
import re
from typing import Iterable, List

from ..models import Author, Paper
from ..models.request import CITATION_FORMATS
from ..utils.text import extract_year

CITE_KEY_STOPWORDS = {"the", "and", "for", "with"}

_LATEX_SPECIALS_RE = re.compile(r"[&%$#_{}]")
_NON_KEY_CHARS_RE = re.compile(r"[^a-z0-9\s]")


def format_author_name(name: str, style: str) -> str:
    """Render one author name for a citation style.

    BibTeX and MLA use ``Last, First Middle``; APA abbreviates given names
    to initials. Single-token names are returned unchanged.
    """
    parts = name.split()
    if len(parts) <= 1:
        return parts[0] if parts else name

    last_name = parts[-1]
    first_names = parts[:-1]

    if style == "apa":
        initials = " ".join(f"{n[0]}." for n in first_names)
        return f"{last_name}, {initials}"
    if style in ("bibtex", "mla"):
        return f"{last_name}, {' '.join(first_names)}"
    return name


def format_author_list(authors: List[Author], style: str) -> str:
    """Join formatted author names following the style's truncation rules."""
    if not authors:
        return "Unknown Author"

    formatted = [format_author_name(a.name, style) for a in authors]

    if style == "bibtex":
        return " and ".join(formatted)

    if style == "apa":
        if len(formatted) == 1:
            return formatted[0]
        if len(formatted) == 2:
            return f"{formatted[0]} & {formatted[1]}"
        if len(formatted) <= 7:
            return f"{', '.join(formatted[:-1])}, & {formatted[-1]}"
        # 8 or more: first six, an ellipsis, then the final author
        return f"{', '.join(formatted[:6])}, ... {formatted[-1]}"

    if style == "mla":
        if len(formatted) == 1:
            return formatted[0]
        if len(formatted) == 2:
            return f"{formatted[0]}, and {formatted[1]}"
        return f"{formatted[0]}, et al."

    return ", ".join(formatted)


def generate_cite_key(paper: Paper) -> str:
    """``<first author last name><year or nd><first significant title word>``."""
    first_author = paper.authors[0].name if paper.authors else "unknown"
    name_parts = first_author.split()
    last_name = name_parts[-1].lower() if name_parts else "unknown"

    year = extract_year(paper.date) or "nd"

    title_words = [
        w
        for w in _NON_KEY_CHARS_RE.sub("", paper.title.lower()).split()
        if len(w) > 3 and w not in CITE_KEY_STOPWORDS
    ]
    title_word = title_words[0] if title_words else "paper"

    return f"{last_name}{year}{title_word}"


def escape_latex(text: str) -> str:
    """Escape LaTeX specials. Backslashes go first."""
    escaped = text.replace("\\", "\\textbackslash{}")
    escaped = _LATEX_SPECIALS_RE.sub(lambda m: "\\" + m.group(0), escaped)
    escaped = escaped.replace("~", "\\textasciitilde{}")
    return escaped.replace("^", "\\textasciicircum{}")


def format_bibtex(paper: Paper) -> str:
    cite_key = generate_cite_key(paper)
    year = extract_year(paper.date) or ""
    ids = paper.external_ids

    entry_type = "article"
    fields = [
        f"  author = {{{format_author_list(paper.authors, 'bibtex')}}}",
        f"  title = {{{escape_latex(paper.title)}}}",
        f"  year = {{{year}}}",
    ]

    if paper.journal:
        fields.append(f"  journal = {{{escape_latex(paper.journal)}}}")
    elif paper.source == "arxiv":
        entry_type = "misc"
        fields.append("  howpublished = {arXiv}")
        if ids.arxiv_id:
            fields.append(f"  eprint = {{{ids.arxiv_id}}}")
            fields.append("  archiveprefix = {arXiv}")

    if ids.doi:
        fields.append(f"  doi = {{{ids.doi}}}")
    if paper.url:
        fields.append(f"  url = {{{paper.url}}}")
    if paper.abstract:
        fields.append(f"  abstract = {{{escape_latex(paper.abstract)}}}")
    if paper.keywords:
        fields.append(f"  keywords = {{{', '.join(paper.keywords)}}}")

    body = ",\n".join(fields)
    return f"@{entry_type}{{{cite_key},\n{body}\n}}"


def format_apa(paper: Paper) -> str:
    year = extract_year(paper.date) or "n.d."
    citation = f"{format_author_list(paper.authors, 'apa')} ({year}). {paper.title}"

    if paper.journal:
        citation += f". *{paper.journal}*"
    elif paper.source == "arxiv" and paper.external_ids.arxiv_id:
        return citation + f". *arXiv*. https://arxiv.org/abs/{paper.external_ids.arxiv_id}"

    if paper.external_ids.doi:
        citation += f". https://doi.org/{paper.external_ids.doi}"
    elif paper.url:
        citation += f". {paper.url}"

    return citation


def format_mla(paper: Paper) -> str:
    year = extract_year(paper.date) or "n.d."
    citation = f'{format_author_list(paper.authors, "mla")}. "{paper.title}."'

    if paper.journal:
        citation += f" *{paper.journal}*,"
    elif paper.source == "arxiv":
        citation += " *arXiv*,"

    citation += f" {year}"

    if paper.external_ids.doi:
        citation += f", https://doi.org/{paper.external_ids.doi}"
    elif paper.url:
        citation += f", {paper.url}"

    return citation + "."


_FORMATTERS = {
    "bibtex": format_bibtex,
    "apa": format_apa,
    "mla": format_mla,
}


def format_citation(paper: Paper, style: str) -> str:
    """Format a paper citation in the given style.

    Args:
        paper: Normalized paper
        style: One of ``bibtex``, ``apa`` or ``mla``

    Returns:
        Citation string

    Raises:
        ValueError: If the style is unknown
    """
    formatter = _FORMATTERS.get(style)
    if formatter is None:
        raise ValueError(f"Unknown citation format: {style} (expected one of {', '.join(CITATION_FORMATS)})")
    return formatter(paper)


def format_citations(papers: Iterable[Paper], style: str) -> str:
    """Format several papers, separated by a blank line."""
    return "\n\n".join(format_citation(p, style) for p in papers)
