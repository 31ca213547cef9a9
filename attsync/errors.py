from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse


class ApiError(Exception):
    def __init__(self, status_code: int, code: str, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message


class InvalidQueryParamError(ApiError):
    def __init__(self, *, code: str, name: str, value: str):
        super().__init__(
            status_code=422,
            code=code,
            message=f"Query parameter '{name}' has an unreadable value: {value!r}.",
        )
        self.name = name
        self.value = value


def get_request_id(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        return str(request_id)
    return "unknown"


def error_response(request: Request, *, status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "ok": False,
            "error": {
                "code": code,
                "message": message,
                "request_id": get_request_id(request),
            },
        },
    )
