from typing import Any, List, Optional

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def api_response(
    *,
    data: Optional[Any] = None,
    message: str = "Operation successful",
    status_code: int = status.HTTP_200_OK,
) -> JSONResponse:
    """
    Envelope for every HTTP response: status_code, status, message, data.

    ``status`` is "success" below 400 and "error" otherwise. Pydantic models
    in ``data`` are encoded by alias so HTTP payloads use the same camelCase
    keys as the progress events.
    """
    return JSONResponse(
        status_code=status_code,
        content={
            "status_code": status_code,
            "status": "success" if status_code < 400 else "error",
            "message": message,
            "data": jsonable_encoder(data, by_alias=True) if data is not None else {},
        },
    )


def error_response(
    message: str,
    status_code: int = status.HTTP_400_BAD_REQUEST,
    errors: Optional[List[Any]] = None,
) -> JSONResponse:
    """Error envelope; field-level validation errors go under data.errors."""
    return api_response(
        data={"errors": errors} if errors else None,
        message=message,
        status_code=status_code,
    )
