"""
SonarQube web API client.

Thin async wrapper over httpx. Listing calls raise on anything but success,
since their result drives the whole run. Mutating calls only raise on
transport errors and hand the status code back to the caller.
"""

import logging
from typing import Sequence

import httpx

from sq_permissions.core.settings import UpdaterSettings
from sq_permissions.exceptions import AuthenticationError, ExternalServiceError
from sq_permissions.schemas.projects import PermissionTemplateSearch, ProjectsSearch

logger = logging.getLogger(__name__)

SERVICE_NAME = "SonarQube API"
PRIVATE_VISIBILITY = "private"


class SonarQubeClient:
    """
    Async client for the endpoints the updater needs.

    Usage:
        async with SonarQubeClient(api_url, token) as client:
            page = await client.search_projects(page=1, page_size=500)
    """

    def __init__(
        self,
        api_url: str,
        token: str,
        read_timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_url = api_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=f"{self.api_url}/",
            auth=httpx.BasicAuth(token, ""),
            # pool=None: unbounded fan-out waits for a free connection
            timeout=httpx.Timeout(10.0, read=read_timeout, pool=None),
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls,
        settings: UpdaterSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "SonarQubeClient":
        return cls(
            settings.api_url,
            settings.token,
            read_timeout=settings.read_timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "SonarQubeClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # =========================================================================
    # Listing calls (hard failure on any error)
    # =========================================================================

    async def search_projects(self, page: int, page_size: int) -> ProjectsSearch:
        """Fetch one page of api/projects/search."""
        response = await self._get(
            "projects/search",
            params={"ps": page_size, "p": page},
        )
        return ProjectsSearch.model_validate(response.json())

    async def search_permission_templates(self, query: str) -> PermissionTemplateSearch:
        """Search permission templates whose name or id matches query."""
        response = await self._get(
            "permissions/search_templates",
            params={"q": query},
        )
        return PermissionTemplateSearch.model_validate(response.json())

    # =========================================================================
    # Mutating calls (status code returned, transport errors raise)
    # =========================================================================

    async def update_visibility(
        self,
        project_key: str,
        visibility: str = PRIVATE_VISIBILITY,
    ) -> int:
        response = await self._post(
            "projects/update_visibility",
            data={"project": project_key, "visibility": visibility},
        )
        return response.status_code

    async def bulk_apply_template(
        self,
        template_id: str,
        project_keys: Sequence[str],
    ) -> int:
        response = await self._post(
            "permissions/bulk_apply_template",
            data={"templateId": template_id, "projects": ",".join(project_keys)},
        )
        return response.status_code

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _get(self, path: str, params: dict) -> httpx.Response:
        try:
            response = await self._client.get(path, params=params)
        except httpx.TimeoutException as e:
            raise ExternalServiceError(SERVICE_NAME, f"timeout on {path}") from e
        except httpx.HTTPError as e:
            raise ExternalServiceError(SERVICE_NAME, f"{path}: {e}") from e

        if response.status_code in (401, 403):
            raise AuthenticationError(SERVICE_NAME)
        if not response.is_success:
            raise ExternalServiceError(
                SERVICE_NAME, f"{path} returned status {response.status_code}"
            )
        return response

    async def _post(self, path: str, data: dict) -> httpx.Response:
        try:
            response = await self._client.post(path, data=data)
        except httpx.TimeoutException as e:
            raise ExternalServiceError(SERVICE_NAME, f"timeout on {path}") from e
        except httpx.HTTPError as e:
            raise ExternalServiceError(SERVICE_NAME, f"{path}: {e}") from e

        if not response.is_success:
            logger.debug(f"POST {path} returned {response.status_code}: {response.text}")
        return response
