from typing import Optional

from fastapi import APIRouter, Depends, Header

from app.features.spaces.services.kontent import KontentSpacesService, get_spaces_service
from app.platform.response import api_response

router = APIRouter(tags=["spaces"])


@router.get("/spaces")
async def list_spaces(
    x_kontent_api_key: Optional[str] = Header(None),
    x_kontent_project_id: Optional[str] = Header(None),
    service: KontentSpacesService = Depends(get_spaces_service),
):
    """
    List the Kontent.ai spaces whose site can be crawled.

    Credentials come from the `x-kontent-api-key` and `x-kontent-project-id`
    headers, falling back to the server configuration. A space's `url` is a
    valid seed for `POST /check`.

    **Example Response:**
    ```json
    {
        "status_code": 200,
        "status": "success",
        "message": "1 spaces available",
        "data": [{"id": "0b9e...", "name": "Marketing site", "url": "https://www.example.com"}]
    }
    ```
    """
    spaces = await service.list_spaces(x_kontent_api_key, x_kontent_project_id)
    return api_response(data=spaces, message=f"{len(spaces)} spaces available")
