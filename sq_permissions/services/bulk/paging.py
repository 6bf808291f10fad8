"""
Paged retrieval of the full project listing.
"""

import logging
import math
import sys
from typing import Awaitable, Callable, TextIO

from sq_permissions.core.settings import MAX_PAGE_SIZE
from sq_permissions.exceptions import ValidationError
from sq_permissions.schemas.projects import Project, ProjectsSearch
from .tasks import concurrency_limit, gather_or_cancel

logger = logging.getLogger(__name__)

FetchPage = Callable[[int], Awaitable[ProjectsSearch]]
OnTotal = Callable[[int, int], None]


class PagedCollector:
    """
    Collects every item of a paged listing.

    The first page is fetched alone to learn the total count; the remaining
    pages are then fetched concurrently and flattened in page order. Any
    failing page aborts the whole collection: a partial listing must never
    drive a bulk mutation.

    on_total is called with (total_count, total_pages) once the first page
    is in, before any other page is requested.

    Attributes:
        total_count: Total reported by the first page (0 before collect())
        total_pages: Number of pages the listing spans
    """

    def __init__(
        self,
        page_size: int,
        fetch_page: FetchPage,
        max_concurrency: int | None = None,
        stream: TextIO | None = None,
        on_total: OnTotal | None = None,
    ):
        if not 1 <= page_size <= MAX_PAGE_SIZE:
            raise ValidationError(f"page size must be between 1 and {MAX_PAGE_SIZE}, got {page_size}")
        self.page_size = page_size
        self.fetch_page = fetch_page
        self.max_concurrency = max_concurrency
        self.stream = stream if stream is not None else sys.stdout
        self.on_total = on_total
        self.total_count = 0
        self.total_pages = 0

    async def collect(self) -> list[Project]:
        first_page = await self.fetch_page(1)
        self.total_count = first_page.paging.total
        self.total_pages = math.ceil(self.total_count / self.page_size)

        self._echo(f"Found {self.total_count} projects on {self.total_pages} pages")
        logger.info(f"Listing spans {self.total_pages} pages for {self.total_count} projects")
        if self.on_total:
            self.on_total(self.total_count, self.total_pages)

        if self.total_pages == 0:
            return []

        limit = concurrency_limit(self.max_concurrency)

        async def fetch_one(index: int) -> list[Project]:
            # Page 1 was already fetched to learn the total
            if index == 1:
                page = first_page
            else:
                async with limit:
                    page = await self.fetch_page(index)
            self._echo(f"  Retrieved {len(page.components)} projects on page {index}")
            return page.components

        pages = await gather_or_cancel(
            fetch_one(index) for index in range(1, self.total_pages + 1)
        )
        return [project for components in pages for project in components]

    def _echo(self, text: str) -> None:
        print(text, file=self.stream, flush=True)
