# errors.py
import json
import logging
from typing import Any, Dict, List, Optional, Sequence

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

# Request sections that FastAPI prefixes to every error location
_LOCATION_ROOTS = {"body", "query", "path", "header"}


class DirectoryClientError(Exception):
    """Raised by the client adapters; the message is meant for the person using the app."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def validation_error_items(errors: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Flatten pydantic errors into {code, path, message} entries."""
    items = []
    for err in errors:
        loc = list(err.get("loc", ()))
        if loc and loc[0] in _LOCATION_ROOTS:
            loc = loc[1:]
        items.append({"code": err.get("type"), "path": loc, "message": err.get("msg")})
    return items

def describe_error_body(status_code: int, text: str) -> str:
    """Human-readable message for a failed gateway response."""
    try:
        body = json.loads(text)
    except ValueError:
        return f"{status_code}: {text or 'Request failed'}"

    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, list):
        parts = []
        for item in error:
            if isinstance(item, dict) and item.get("path") is not None and item.get("message"):
                parts.append(f"{'.'.join(str(p) for p in item['path'])}: {item['message']}")
            elif isinstance(item, dict) and item.get("message"):
                parts.append(item["message"])
            else:
                parts.append(json.dumps(item))
        return "Validation error: " + "; ".join(parts)
    if error is not None:
        return error if isinstance(error, str) else json.dumps(error)
    return json.dumps(body)


def register_exception_handlers(app: FastAPI) -> None:
    """Every error response has the shape {"error": ...}."""

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": validation_error_items(exc.errors())})

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})
