# Citation formatting package

from .formatter import (
    format_citation,
    format_citations,
    generate_cite_key,
    escape_latex,
)

__all__ = [
    "format_citation",
    "format_citations",
    "generate_cite_key",
    "escape_latex",
]
