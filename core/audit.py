from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from django.db import transaction
from django.forms.models import model_to_dict
from django.http import HttpRequest

from .models import AuditLog, Organization
from .utils import actor_or_none


logger = logging.getLogger(__name__)


def _entity_type_and_id(entity: Any) -> tuple[str, str]:
    if entity is None:
        return "", ""
    if hasattr(entity, "_meta"):
        entity_type = entity._meta.object_name  # type: ignore[attr-defined]
    else:
        entity_type = entity.__class__.__name__
    entity_id = ""
    if getattr(entity, "pk", None) is not None:
        entity_id = str(entity.pk)
    return entity_type, entity_id


def snapshot(instance, fields: Optional[Iterable[str]] = None) -> dict[str, Any]:
    """Plain-dict copy of a model row for before/after audit values."""
    data = model_to_dict(instance, fields=list(fields) if fields else None)
    data["id"] = instance.pk
    return data


def record_audit(
    *,
    organization: Organization,
    actor,
    action: str,
    entity: Any,
    old_values: Optional[dict[str, Any]] = None,
    new_values: Optional[dict[str, Any]] = None,
    request: Optional[HttpRequest] = None,
) -> AuditLog | None:
    """
    Persist an audit entry. Never raises.

    Runs in its own savepoint, so a failing insert leaves the caller's
    transaction usable and the primary operation intact.
    """
    entity_type, entity_id = _entity_type_and_id(entity)
    remote_ip = None
    user_agent = ""
    if request is not None:
        forwarded = request.META.get("HTTP_X_FORWARDED_FOR", "")
        remote_ip = forwarded.split(",")[0].strip() or request.META.get("REMOTE_ADDR") or None
        user_agent = request.META.get("HTTP_USER_AGENT", "")

    try:
        with transaction.atomic():
            return AuditLog.objects.create(
                organization=organization,
                actor=actor_or_none(actor),
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                old_values=old_values,
                new_values=new_values,
                remote_ip=remote_ip,
                user_agent=user_agent,
            )
    except Exception:
        logger.exception("Failed to record audit %s %s#%s", action, entity_type, entity_id)
        return None
