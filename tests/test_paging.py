import asyncio
import io

import pytest

from sq_permissions.exceptions import ExternalServiceError, ValidationError
from sq_permissions.schemas.projects import PagingInfo, Project, ProjectsSearch
from sq_permissions.services.bulk.paging import PagedCollector


class FakeListing:
    """Paged listing of `total` projects, with optional per-page delays."""

    def __init__(self, total: int, page_size: int, delays: dict[int, float] | None = None):
        self.total = total
        self.page_size = page_size
        self.delays = delays or {}
        self.calls: list[int] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def fetch_page(self, index: int) -> ProjectsSearch:
        self.calls.append(index)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(index, 0))
        finally:
            self.in_flight -= 1

        start = (index - 1) * self.page_size
        end = min(start + self.page_size, self.total)
        return ProjectsSearch(
            paging=PagingInfo(page_index=index, page_size=self.page_size, total=self.total),
            components=[
                Project(key=f"p{i}", name=f"P{i}", qualifier="TRK", visibility="public")
                for i in range(start, end)
            ],
        )


@pytest.mark.asyncio
async def test_collects_every_page():
    listing = FakeListing(total=1200, page_size=500)
    stream = io.StringIO()
    collector = PagedCollector(500, listing.fetch_page, stream=stream)

    projects = await collector.collect()

    assert sorted(listing.calls) == [1, 2, 3]
    assert len(projects) == 1200
    assert len({p.key for p in projects}) == 1200
    assert collector.total_count == 1200
    assert collector.total_pages == 3

    lines = stream.getvalue().splitlines()
    assert lines[0] == "Found 1200 projects on 3 pages"
    assert sorted(lines[1:]) == [
        "  Retrieved 200 projects on page 3",
        "  Retrieved 500 projects on page 1",
        "  Retrieved 500 projects on page 2",
    ]


@pytest.mark.asyncio
@pytest.mark.parametrize("total,page_size,pages", [(1, 500, 1), (500, 500, 1), (501, 500, 2), (7, 3, 3), (10, 1, 10)])
async def test_page_count_is_ceiling_of_total_over_page_size(total, page_size, pages):
    listing = FakeListing(total=total, page_size=page_size)
    collector = PagedCollector(page_size, listing.fetch_page, stream=io.StringIO())

    projects = await collector.collect()

    assert len(listing.calls) == pages
    assert len(projects) == total


@pytest.mark.asyncio
async def test_empty_listing_stops_after_first_call():
    listing = FakeListing(total=0, page_size=500)
    stream = io.StringIO()

    projects = await PagedCollector(500, listing.fetch_page, stream=stream).collect()

    assert projects == []
    assert listing.calls == [1]
    assert stream.getvalue() == "Found 0 projects on 0 pages\n"


@pytest.mark.asyncio
async def test_page_order_is_kept_when_later_pages_finish_first():
    # Page 2 is the slowest, page 4 the fastest
    listing = FakeListing(total=10, page_size=3, delays={2: 0.05, 3: 0.02, 4: 0.0})

    projects = await PagedCollector(3, listing.fetch_page, stream=io.StringIO()).collect()

    assert [p.key for p in projects] == [f"p{i}" for i in range(10)]


@pytest.mark.asyncio
async def test_failing_page_aborts_and_cancels_other_pages():
    listing = FakeListing(total=9, page_size=3)
    cancelled = []

    async def fetch_page(index):
        if index == 2:
            raise ExternalServiceError("SonarQube API", "projects/search returned status 500")
        if index == 3:
            try:
                await asyncio.sleep(5)
            except asyncio.CancelledError:
                cancelled.append(index)
                raise
        return await listing.fetch_page(index)

    with pytest.raises(ExternalServiceError):
        await PagedCollector(3, fetch_page, stream=io.StringIO()).collect()

    assert cancelled == [3]


@pytest.mark.asyncio
async def test_max_concurrency_limits_pages_in_flight():
    listing = FakeListing(total=50, page_size=5, delays={i: 0.01 for i in range(2, 11)})

    projects = await PagedCollector(
        5, listing.fetch_page, max_concurrency=2, stream=io.StringIO()
    ).collect()

    assert len(projects) == 50
    assert listing.max_in_flight <= 2


@pytest.mark.parametrize("page_size", [0, 501])
def test_page_size_out_of_range_is_rejected(page_size):
    with pytest.raises(ValidationError):
        PagedCollector(page_size, FakeListing(0, 1).fetch_page)


@pytest.mark.asyncio
async def test_on_total_runs_before_other_pages_are_requested():
    listing = FakeListing(total=7, page_size=3)
    seen = []

    def on_total(total_count, total_pages):
        seen.append((total_count, total_pages, list(listing.calls)))

    await PagedCollector(3, listing.fetch_page, stream=io.StringIO(), on_total=on_total).collect()

    assert seen == [(7, 3, [1])]
