"""Standardized API error responses.

Every error body has the shape::

    {"type": "validation_error" | "client_error" | "server_error",
     "errors": [{"code": ..., "detail": ..., "attr": ...}]}

``standard_exception_handler`` applies it to DRF exceptions; views use
``error_response`` to report domain exceptions in the same format.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

import structlog
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = structlog.get_logger(__name__)

VALIDATION_ERROR = "validation_error"
CLIENT_ERROR = "client_error"
SERVER_ERROR = "server_error"


def error_item(detail: Any, code: str = "invalid", attr: Optional[str] = None) -> Dict[str, Any]:
    return {"code": code, "detail": str(detail), "attr": attr}


def error_response(
    error_type: str,
    errors: Iterable[Dict[str, Any]],
    status_code: int,
    **extra: Any,
) -> Response:
    body: Dict[str, Any] = {"type": error_type, "errors": list(errors)}
    body.update(extra)
    return Response(body, status=status_code)


def flatten_errors(detail: Any, attr: Optional[str] = None) -> List[Dict[str, Any]]:
    """Flatten a nested DRF error detail into ``error_item`` entries.

    Nested keys are joined with dots (``shippingAddress.phone``) and list
    positions become numeric segments (``items.0.quantity``).
    """
    if isinstance(detail, dict):
        items: List[Dict[str, Any]] = []
        for key, value in detail.items():
            name = None if key == "non_field_errors" else str(key)
            path = ".".join(p for p in (attr, name) if p) or None
            items.extend(flatten_errors(value, path))
        return items
    if isinstance(detail, list):
        items = []
        for index, value in enumerate(detail):
            if isinstance(value, (dict, list)):
                path = ".".join(p for p in (attr, str(index)) if p)
                items.extend(flatten_errors(value, path))
            else:
                items.extend(flatten_errors(value, attr))
        return items
    code = getattr(detail, "code", None) or "invalid"
    return [error_item(detail, code=code, attr=attr)]


def standard_exception_handler(exc: Exception, context: Dict[str, Any]) -> Optional[Response]:
    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, exceptions.ValidationError):
        error_type = VALIDATION_ERROR
    elif response.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        error_type = SERVER_ERROR
    else:
        error_type = CLIENT_ERROR

    detail = exc.detail if isinstance(exc, exceptions.APIException) else response.data
    response.data = {"type": error_type, "errors": flatten_errors(detail)}
    logger.info(
        "api.error",
        type=error_type,
        status_code=response.status_code,
        error_count=len(response.data["errors"]),
    )
    return response
