"""
Citation service for formatting papers by id.
"""

import logging
from typing import Optional

from ..citation import format_citation
from ..models import CiteRequest, CiteResponse
from .paper_service import PaperService

logger = logging.getLogger(__name__)


class CitationService:
    """Formats citations for papers resolved through ``PaperService``."""

    def __init__(self, paper_service: PaperService):
        self.paper_service = paper_service

    async def cite(self, request: CiteRequest) -> Optional[CiteResponse]:
        """Format the requested paper.

        Args:
            request: Validated citation request

        Returns:
            CiteResponse, or None when the paper cannot be found
        """
        paper = await self.paper_service.get_paper_for_citation(request.paper_id)
        if paper is None:
            return None

        citation = format_citation(paper, request.format)
        logger.debug(f"Formatted {request.paper_id} as {request.format}")
        return CiteResponse(citation=citation, format=request.format)
