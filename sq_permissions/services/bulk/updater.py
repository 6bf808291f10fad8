"""
Bulk permissions update.

Orchestrates the whole run: every project is listed, set to private, then
gets the permission template applied. Each phase is a separate method.
"""

import logging
import sys
from typing import Any, TextIO

from sq_permissions.core.settings import (
    DEFAULT_PROGRESS_INTERVAL,
    MAX_BULK_APPLY,
    MAX_PAGE_SIZE,
    UpdaterSettings,
)
from sq_permissions.schemas.projects import Project, UpdateResult
from sq_permissions.services.sonarqube_client import SonarQubeClient
from .batching import BatchedExecutor, IdentifyBatch, batch_index, first_key
from .error_report import ErrorAggregator, OperationOutcome
from .paging import PagedCollector
from .phases import PhaseReporter, UpdatePhase
from .progress import ProgressCounter, ProgressMonitor

logger = logging.getLogger(__name__)


class PermissionsUpdater:
    """
    Orchestrates a bulk permissions update.

    Phases:
    1. Collect every project from the paged listing
    2. Set each project to private, one call per project
    3. Apply the permission template in batches of max_bulk_apply keys

    Failed calls with a status code are reported after their phase and do
    not stop the run. Any exception moves the updater to FATAL and
    propagates.
    """

    def __init__(
        self,
        client: SonarQubeClient,
        template_id: str,
        page_size: int = MAX_PAGE_SIZE,
        max_bulk_apply: int = MAX_BULK_APPLY,
        max_concurrency: int | None = None,
        progress_interval: float = DEFAULT_PROGRESS_INTERVAL,
        read_timeout_ms: int | None = None,
        reporter: PhaseReporter | None = None,
        stream: TextIO | None = None,
        err_stream: TextIO | None = None,
    ):
        self.client = client
        self.template_id = template_id
        self.page_size = page_size
        self.max_bulk_apply = max_bulk_apply
        self.max_concurrency = max_concurrency
        self.progress_interval = progress_interval
        self.read_timeout_ms = read_timeout_ms
        self.reporter = reporter
        self.stream = stream if stream is not None else sys.stdout
        self.err_stream = err_stream if err_stream is not None else sys.stderr
        self.phase = UpdatePhase.INIT
        self.progress = ProgressCounter()
        self._errors = ErrorAggregator(self.err_stream)

    @classmethod
    def from_settings(
        cls,
        client: SonarQubeClient,
        settings: UpdaterSettings,
        **kwargs: Any,
    ) -> "PermissionsUpdater":
        return cls(
            client,
            settings.permission_template_id,
            page_size=settings.page_size,
            max_bulk_apply=settings.max_bulk_apply,
            max_concurrency=settings.max_concurrency,
            progress_interval=settings.progress_interval,
            read_timeout_ms=settings.read_timeout_ms,
            **kwargs,
        )

    # =========================================================================
    # Main Entry Point
    # =========================================================================

    async def run(self) -> UpdateResult:
        """
        Execute the full update workflow.

        Returns:
            Summary with project count and soft failure counts
        """
        try:
            await self._enter(UpdatePhase.COLLECTING)
            projects, total_pages = await self._collect_projects()

            await self._enter(
                UpdatePhase.PRIVATIZING,
                total=len(projects),
                pages=total_pages,
            )
            privatize_failures = await self._privatize_all(projects)

            await self._enter(UpdatePhase.APPLYING_TEMPLATE, template=self.template_id)
            template_failures = await self._apply_template(projects)
        except Exception as e:
            await self._enter(UpdatePhase.FATAL, error=str(e) or type(e).__name__)
            raise

        result = UpdateResult(
            total_projects=len(projects),
            total_pages=total_pages,
            privatize_failures=len(privatize_failures),
            template_failures=len(template_failures),
        )
        await self._enter(UpdatePhase.DONE, **result.model_dump())
        self._echo("Done.")
        return result

    # =========================================================================
    # Phase 1: Collect Projects
    # =========================================================================

    async def _collect_projects(self) -> tuple[list[Project], int]:
        async def fetch_page(index: int):
            return await self.client.search_projects(page=index, page_size=self.page_size)

        collector = PagedCollector(
            self.page_size,
            fetch_page,
            max_concurrency=self.max_concurrency,
            stream=self.stream,
            on_total=self._announce_retrieval,
        )
        projects = await collector.collect()

        self._echo(f"Retrieved a total of {len(projects)} projects.")
        return projects, collector.total_pages

    def _announce_retrieval(self, total_count: int, total_pages: int) -> None:
        if self.read_timeout_ms is None:
            self._echo("Retrieving projects...")
        else:
            self._echo(
                f"Retrieving projects (this may take a while - the timeout is set to {self.read_timeout_ms}ms)..."
            )

    # =========================================================================
    # Phase 2: Set Projects To Private
    # =========================================================================

    async def _privatize_all(self, projects: list[Project]) -> list[OperationOutcome]:
        self._echo("Setting projects to private...", end="")

        async def set_private(batch: list[str]) -> int:
            return await self.client.update_visibility(batch[0])

        outcomes = await self._run_phase(projects, 1, set_private, identify=first_key)
        return self._errors.report(
            outcomes,
            lambda status_code, key: (
                f"Error: Could not set project '{key}' to private (status code {status_code})"
            ),
            log_field="project",
        )

    # =========================================================================
    # Phase 3: Apply Permission Template
    # =========================================================================

    async def _apply_template(self, projects: list[Project]) -> list[OperationOutcome]:
        self._echo(f"Applying permissions template '{self.template_id}'...", end="")

        async def apply_template(batch: list[str]) -> int:
            return await self.client.bulk_apply_template(self.template_id, batch)

        outcomes = await self._run_phase(projects, self.max_bulk_apply, apply_template)
        return self._errors.report(
            outcomes,
            lambda status_code, index: (
                f"Error: could not update permissions on batch {index} (status code {status_code})"
            ),
            log_field="batch",
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _run_phase(
        self,
        projects: list[Project],
        batch_size: int,
        operation,
        identify: IdentifyBatch = batch_index,
    ) -> list[OperationOutcome]:
        """Run operation over all project keys while a monitor prints progress."""
        self.progress.reset()
        executor = BatchedExecutor(self.progress, max_concurrency=self.max_concurrency)
        keys = [project.key for project in projects]

        # The monitor is joined before anything else is printed, even on failure
        async with ProgressMonitor(
            self.progress,
            len(keys),
            interval=self.progress_interval,
            stream=self.stream,
        ):
            return await executor.run(keys, batch_size, operation, identify=identify)

    async def _enter(self, phase: UpdatePhase, **data: Any) -> None:
        self.phase = phase
        if self.reporter:
            await self.reporter.report_phase(phase, **data)

    def _echo(self, text: str, end: str = "\n") -> None:
        print(text, end=end, file=self.stream, flush=True)
