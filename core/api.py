from __future__ import annotations

import json
import logging
from decimal import Decimal

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from .exceptions import DomainError


logger = logging.getLogger(__name__)


def serialize_money(value: Decimal | None) -> str:
    return f"{Decimal(value or Decimal('0.00')):.2f}"


def json_from_body(request):
    try:
        return json.loads(request.body.decode("utf-8") or "{}")
    except (UnicodeDecodeError, ValueError):
        return None


def exception_handler(exc, context):
    """Render DomainError subclasses as {"error": ...}; everything else goes to DRF."""
    if isinstance(exc, DomainError):
        if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.warning("%s in %s: %s", exc.__class__.__name__, context.get("view"), exc.message)
        return Response({"error": exc.message}, status=exc.status_code)
    return drf_exception_handler(exc, context)
