"""
Kontent.ai Spaces

Lists the spaces of a Kontent.ai environment through the Management API,
each paired with the domain it is previewed on so it can seed a crawl.
"""
from typing import Any, Callable, Dict, List, Optional

import httpx

from app.features.spaces.schemas.space import Space
from app.platform.config import settings
from app.platform.exceptions import MissingCredentialsError, SpacesAuthError, SpacesError
from app.platform.logger import get_logger

logger = get_logger(__name__)

ClientFactory = Callable[[], httpx.AsyncClient]


def _space_domains(preview_configuration: Dict[str, Any]) -> Dict[str, str]:
    """space id -> preview domain, from the environment's preview configuration."""
    domains = {}
    for entry in preview_configuration.get("space_domains") or []:
        space_id = (entry.get("space") or {}).get("id")
        domain = (entry.get("domain") or "").strip()
        if space_id and domain:
            domains[space_id] = domain
    return domains


def _site_url(domain: str) -> str:
    if domain.startswith(("http://", "https://")):
        return domain.rstrip("/")
    return f"https://{domain.rstrip('/')}"


class KontentSpacesService:
    def __init__(
        self,
        base_url: str = settings.KONTENT_MANAGEMENT_API_URL,
        timeout: float = settings.KONTENT_TIMEOUT,
        client_factory: Optional[ClientFactory] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.client_factory = client_factory or (lambda: httpx.AsyncClient(timeout=self.timeout))

    async def list_spaces(self, api_key: Optional[str] = None, project_id: Optional[str] = None) -> List[Space]:
        """
        Spaces that have a preview domain, in the order Kontent.ai returns them.

        Credentials fall back to the configured ones when not given.

        Raises:
            MissingCredentialsError: no API key or project id is available
            SpacesAuthError: Kontent.ai rejected the API key
            SpacesError: Kontent.ai failed or could not be reached
        """
        api_key = api_key or settings.KONTENT_API_KEY
        project_id = project_id or settings.KONTENT_PROJECT_ID
        if not api_key or not project_id:
            raise MissingCredentialsError("Kontent.ai API key and project id are required")

        project_url = f"{self.base_url}/projects/{project_id}"
        headers = {"Authorization": f"Bearer {api_key}"}

        try:
            async with self.client_factory() as client:
                spaces_response = await client.get(f"{project_url}/spaces", headers=headers)
                spaces_response.raise_for_status()

                preview_response = await client.get(f"{project_url}/preview-configuration", headers=headers)
                preview_response.raise_for_status()

            items = spaces_response.json()
            if not isinstance(items, list):
                raise ValueError("space listing is not an array")
            domains = _space_domains(preview_response.json())
        except httpx.HTTPStatusError as e:
            code = e.response.status_code
            logger.warning(f"Kontent.ai returned {code} for {e.request.url}")
            if code in (401, 403):
                raise SpacesAuthError("Kontent.ai rejected the API key") from e
            raise SpacesError(f"Kontent.ai returned {code}") from e
        except httpx.RequestError as e:
            logger.error(f"Kontent.ai could not be reached: {e}")
            raise SpacesError("Kontent.ai could not be reached") from e
        except (ValueError, AttributeError) as e:
            logger.error(f"Unexpected Kontent.ai response: {e}")
            raise SpacesError("Unexpected response from Kontent.ai") from e

        spaces = []
        for item in items:
            domain = domains.get(item.get("id"))
            if not domain:
                logger.debug(f"Space {item.get('codename')} has no preview domain, skipped")
                continue
            spaces.append(Space(id=item["id"], name=item.get("name") or item.get("codename", ""), url=_site_url(domain)))

        logger.info(f"Listed {len(spaces)} of {len(items)} Kontent.ai spaces for project {project_id}")
        return spaces


_spaces_service: Optional[KontentSpacesService] = None


def get_spaces_service() -> KontentSpacesService:
    """FastAPI dependency returning the process-wide spaces client."""
    global _spaces_service
    if _spaces_service is None:
        _spaces_service = KontentSpacesService()
    return _spaces_service
