"""
CLI entrypoint for the SonarQube permissions updater.

Sets every project of a SonarQube instance to private, then applies a
permission template to all of them.

Example:
    SONARQUBE_TOKEN=... sq-permissions-updater -b https://sonar.example.com -t my-template
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

import pydantic
import typer

from sq_permissions.core.logging_config import setup_logging
from sq_permissions.core.settings import (
    DEFAULT_READ_TIMEOUT_MS,
    MAX_BULK_APPLY,
    MAX_PAGE_SIZE,
    UpdaterSettings,
    load_token,
)
from sq_permissions.exceptions import AppException, ValidationError
from sq_permissions.schemas.projects import UpdateResult
from sq_permissions.services.bulk import LoggingPhaseReporter, PermissionsUpdater
from sq_permissions.services.permission_templates import resolve_permission_template
from sq_permissions.services.sonarqube_client import SonarQubeClient

app = typer.Typer(
    name="sq-permissions-updater",
    help="Set all SonarQube projects to private and apply a permission template to them",
    add_completion=False,
)

logger = logging.getLogger(__name__)


async def run_update(settings: UpdaterSettings) -> UpdateResult:
    """Validate the permission template, then run the bulk update."""
    async with SonarQubeClient.from_settings(settings) as client:
        await resolve_permission_template(client, settings.permission_template_id)
        updater = PermissionsUpdater.from_settings(
            client,
            settings,
            reporter=LoggingPhaseReporter(),
        )
        return await updater.run()


@app.command()
def update(
    base_url: str = typer.Option(
        ..., "-b", "--base-url",
        help="Base URL of the SonarQube instance you want to query against",
    ),
    permission_template: str = typer.Option(
        ..., "-t", "--permission-template",
        help="The ID of the permissions template to apply to all projects",
    ),
    page_size: int = typer.Option(
        MAX_PAGE_SIZE, "-p", "--page-size", min=1, max=MAX_PAGE_SIZE,
        help="Page size used for pagination with SonarQube",
    ),
    read_timeout: int = typer.Option(
        DEFAULT_READ_TIMEOUT_MS, "-r", "--read-timeout", min=1,
        help="The timeout for web requests in milliseconds",
    ),
    max_bulk_apply: int = typer.Option(
        MAX_BULK_APPLY, "--max-bulk-apply", min=1, max=MAX_BULK_APPLY,
        help="The number of projects to which to apply the permission template in bulk at once",
    ),
    max_concurrency: Optional[int] = typer.Option(
        None, "--max-concurrency", min=1,
        help="Maximum number of requests in flight at once (default: unlimited)",
    ),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Log progress details to stderr"),
    log_dir: Optional[Path] = typer.Option(None, "--log-dir", help="Also write a CSV log into this directory"),
):
    """
    Set every project to private, then apply the permission template to all of them.
    """
    setup_logging(logging.INFO if verbose else logging.WARNING, log_dir)

    try:
        token = load_token()
        try:
            settings = UpdaterSettings(
                base_url=base_url,
                token=token,
                permission_template_id=permission_template,
                page_size=page_size,
                read_timeout_ms=read_timeout,
                max_bulk_apply=max_bulk_apply,
                max_concurrency=max_concurrency,
            )
        except pydantic.ValidationError as e:
            raise ValidationError(str(e)) from e

        result = asyncio.run(run_update(settings))
    except AppException as e:
        logger.info(f"{e.error_code}: {e.message}")
        typer.echo(f"Error: {e.message}", err=True)
        raise typer.Exit(code=e.exit_code)

    logger.info(
        f"Update finished: {result.total_projects} projects, "
        f"{result.privatize_failures} visibility failures, "
        f"{result.template_failures} template batch failures"
    )


def main() -> None:
    app()


if __name__ == "__main__":
    main()
