"""
Pytest configuration and shared fixtures.

FakeSonarQube answers the web API endpoints the updater uses through an
httpx.MockTransport and records every call it receives.
"""
import base64

import httpx
import pytest

from sq_permissions.services.sonarqube_client import SonarQubeClient

TOKEN = "squ_test_token"
BASE_URL = "https://sonar.example.com"
API_URL = f"{BASE_URL}/api"


def make_project(key: str) -> dict:
    return {
        "key": key,
        "name": key.replace("-", " ").title(),
        "qualifier": "TRK",
        "visibility": "public",
        "lastAnalysisDate": "2024-01-15T10:00:00+0000",
        "unknownField": "ignored",
    }


class FakeSonarQube:
    """In-memory stand-in for the SonarQube web API."""

    def __init__(self):
        self.projects: list[dict] = []
        self.templates: list[str] = []
        self.default_templates: list[str] = []
        # project key -> status code of its visibility update
        self.visibility_status: dict[str, int] = {}
        # first key of a batch -> status code of its bulk apply
        self.bulk_status: dict[str, int] = {}
        self.failing_pages: set[int] = set()
        self.broken_keys: set[str] = set()

        self.page_requests: list[int] = []
        self.visibility_requests: list[tuple[str, str]] = []
        self.bulk_requests: list[tuple[str, list[str]]] = []

    def add_projects(self, count: int) -> list[str]:
        keys = [f"project-{i:04d}" for i in range(len(self.projects), len(self.projects) + count)]
        self.projects.extend(make_project(key) for key in keys)
        return keys

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def handler(self, request: httpx.Request) -> httpx.Response:
        expected = "Basic " + base64.b64encode(f"{TOKEN}:".encode()).decode()
        if request.headers.get("authorization") != expected:
            return httpx.Response(401)

        routes = {
            ("GET", "/api/projects/search"): self._search_projects,
            ("GET", "/api/permissions/search_templates"): self._search_templates,
            ("POST", "/api/projects/update_visibility"): self._update_visibility,
            ("POST", "/api/permissions/bulk_apply_template"): self._bulk_apply_template,
        }
        route = routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404)
        return route(request)

    def _search_projects(self, request: httpx.Request) -> httpx.Response:
        page_size = int(request.url.params["ps"])
        page = int(request.url.params["p"])
        self.page_requests.append(page)
        if page in self.failing_pages:
            return httpx.Response(500, json={"errors": [{"msg": "boom"}]})

        start = (page - 1) * page_size
        return httpx.Response(200, json={
            "paging": {"pageIndex": page, "pageSize": page_size, "total": len(self.projects)},
            "components": self.projects[start:start + page_size],
        })

    def _search_templates(self, request: httpx.Request) -> httpx.Response:
        query = request.url.params["q"]
        return httpx.Response(200, json={
            "permissionTemplates": [
                {"id": t, "name": f"Template {t}"} for t in self.templates if query in t
            ],
            "defaultTemplates": [
                {"templateId": t, "qualifier": "TRK"} for t in self.default_templates
            ],
        })

    def _update_visibility(self, request: httpx.Request) -> httpx.Response:
        form = httpx.QueryParams(request.content.decode())
        key = form["project"]
        if key in self.broken_keys:
            raise httpx.ConnectError("connection reset by peer", request=request)
        self.visibility_requests.append((key, form["visibility"]))
        return httpx.Response(self.visibility_status.get(key, 204))

    def _bulk_apply_template(self, request: httpx.Request) -> httpx.Response:
        form = httpx.QueryParams(request.content.decode())
        keys = form["projects"].split(",")
        self.bulk_requests.append((form["templateId"], keys))
        return httpx.Response(self.bulk_status.get(keys[0], 204))


class RecordingReporter:
    """Phase reporter remembering every transition."""

    def __init__(self):
        self.events = []

    @property
    def phases(self):
        return [phase for phase, _ in self.events]

    async def report_phase(self, phase, **data):
        self.events.append((phase, data))


@pytest.fixture
def fake_sonarqube():
    return FakeSonarQube()


@pytest.fixture
def make_client(fake_sonarqube):
    """Build SonarQubeClient instances wired to the fake service."""
    def _make(token: str = TOKEN, **kwargs) -> SonarQubeClient:
        return SonarQubeClient(API_URL, token, transport=fake_sonarqube.transport, **kwargs)
    return _make


@pytest.fixture
def reporter():
    return RecordingReporter()
