from typing import Any

from fastapi.responses import JSONResponse

from .timeutils import iso_timestamp


def success_body(data: Any, message: str) -> dict:
    return {
        'success': True,
        'data': data,
        'message': message,
        'timestamp': iso_timestamp(),
    }


def error_response(
    error: str,
    status_code: int,
    headers: dict[str, str] | None = None,
    details: Any = None,
) -> JSONResponse:
    body: dict[str, Any] = {
        'success': False,
        'error': error,
        'timestamp': iso_timestamp(),
    }
    if details is not None:
        body['details'] = details
    return JSONResponse(body, status_code=status_code, headers=headers)
