"""
Kontent.ai Spaces Tests

The Management API is served by an httpx MockTransport; nothing here leaves
the process.
"""
import httpx
import pytest
from unittest.mock import patch

from app.features.spaces.services.kontent import KontentSpacesService, get_spaces_service
from app.platform.config import settings
from app.platform.exceptions import MissingCredentialsError, SpacesAuthError, SpacesError

BASE = "https://manage.test/v2"
PROJECT = "proj-1"

SPACES = [
    {"id": "s1", "name": "Marketing", "codename": "marketing"},
    {"id": "s2", "name": "", "codename": "docs"},
    {"id": "s3", "name": "Drafts", "codename": "drafts"},
]

PREVIEW = {
    "space_domains": [
        {"space": {"id": "s1"}, "domain": "www.example.com"},
        {"space": {"id": "s2"}, "domain": "http://docs.example.com/"},
    ],
    "preview_url_patterns": [],
}


def kontent(handler=None, requests=None):
    """Spaces service talking to a scripted Management API."""
    requests = requests if requests is not None else []

    def default_handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/spaces"):
            return httpx.Response(200, json=SPACES)
        if request.url.path.endswith("/preview-configuration"):
            return httpx.Response(200, json=PREVIEW)
        return httpx.Response(404)

    def recording(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return (handler or default_handler)(request)

    transport = httpx.MockTransport(recording)
    return KontentSpacesService(base_url=BASE, client_factory=lambda: httpx.AsyncClient(transport=transport))


class TestKontentSpacesService:
    @pytest.mark.asyncio
    async def test_spaces_with_preview_domains(self):
        requests = []
        spaces = await kontent(requests=requests).list_spaces("key-1", PROJECT)

        assert [(s.id, s.name, s.url) for s in spaces] == [
            ("s1", "Marketing", "https://www.example.com"),
            ("s2", "docs", "http://docs.example.com"),
        ]
        assert [str(r.url) for r in requests] == [
            f"{BASE}/projects/{PROJECT}/spaces",
            f"{BASE}/projects/{PROJECT}/preview-configuration",
        ]
        assert all(r.headers["Authorization"] == "Bearer key-1" for r in requests)

    @pytest.mark.asyncio
    @patch.object(settings, "KONTENT_PROJECT_ID", None)
    async def test_missing_credentials(self):
        requests = []
        with pytest.raises(MissingCredentialsError):
            await kontent(requests=requests).list_spaces("key-1", None)
        assert requests == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("code", [401, 403])
    async def test_rejected_key(self, code):
        service = kontent(lambda request: httpx.Response(code, json={"message": "Unauthorized"}))

        with pytest.raises(SpacesAuthError):
            await service.list_spaces("bad", PROJECT)

    @pytest.mark.asyncio
    async def test_upstream_error(self):
        service = kontent(lambda request: httpx.Response(500))

        with pytest.raises(SpacesError) as exc_info:
            await service.list_spaces("key-1", PROJECT)
        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_unreachable(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(SpacesError, match="could not be reached"):
            await kontent(refuse).list_spaces("key-1", PROJECT)

    @pytest.mark.asyncio
    async def test_unexpected_payload(self):
        service = kontent(lambda request: httpx.Response(200, json={"spaces": "nope"}))

        with pytest.raises(SpacesError, match="Unexpected response"):
            await service.list_spaces("key-1", PROJECT)


class TestSpacesEndpoint:
    @pytest.fixture
    def requests(self, test_app):
        requests = []
        test_app.dependency_overrides[get_spaces_service] = lambda: kontent(requests=requests)
        yield requests
        test_app.dependency_overrides.pop(get_spaces_service, None)

    def test_lists_spaces(self, client, requests):
        response = client.get(
            "/api/v1/spaces",
            headers={"x-kontent-api-key": "key-1", "x-kontent-project-id": PROJECT},
        )

        assert response.status_code == 200
        payload = response.json()
        assert payload["message"] == "2 spaces available"
        assert payload["data"][0] == {"id": "s1", "name": "Marketing", "url": "https://www.example.com"}
        assert requests[0].headers["Authorization"] == "Bearer key-1"

    @patch.object(settings, "KONTENT_PROJECT_ID", None)
    def test_missing_headers(self, client, requests):
        response = client.get("/api/v1/spaces", headers={"x-kontent-api-key": "key-1"})

        assert response.status_code == 400
        assert response.json()["status"] == "error"
        assert "project id" in response.json()["message"]
        assert requests == []
