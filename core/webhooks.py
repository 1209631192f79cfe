"""
Identity-provider membership events.

The identity provider owns users and organizations; we mirror membership
into tenant-scoped Employee rows and create the Organization the first time
we hear about it.
"""
from __future__ import annotations

import json
import logging
from typing import Any

from django.conf import settings
from django.db import transaction
from django.utils import timezone
from svix.webhooks import Webhook, WebhookVerificationError

from .exceptions import Unauthorized, ValidationError
from .models import Employee, Organization
from .numbering import EMPLOYEE_PREFIX, create_with_number


logger = logging.getLogger(__name__)

MEMBERSHIP_CREATED = "organizationMembership.created"
MEMBERSHIP_DELETED = "organizationMembership.deleted"

ADMIN_ROLE = "org:admin"


def parse_identity_event(body: bytes, headers) -> dict[str, Any]:
    """Verify the Svix signature when a secret is configured, then decode."""
    secret = getattr(settings, "IDENTITY_WEBHOOK_SECRET", "")
    if secret:
        svix_headers = {
            "svix-id": headers.get("svix-id", ""),
            "svix-timestamp": headers.get("svix-timestamp", ""),
            "svix-signature": headers.get("svix-signature", ""),
        }
        try:
            event = Webhook(secret).verify(body, svix_headers)
        except WebhookVerificationError as exc:
            raise Unauthorized("Invalid webhook signature") from exc
    else:
        try:
            event = json.loads(body.decode("utf-8") or "{}")
        except (UnicodeDecodeError, ValueError) as exc:
            raise ValidationError("Invalid JSON") from exc
    if not isinstance(event, dict):
        raise ValidationError("Invalid event payload")
    return event


def get_or_create_organization(external_id: str, name: str = "") -> Organization:
    organization = Organization.objects.filter(external_id=external_id).first()
    if organization:
        return organization
    organization, created = Organization.objects.get_or_create(
        external_id=external_id,
        defaults={
            "name": name or "Organization",
            "slug": Organization.slug_from_external_id(external_id),
        },
    )
    if created:
        logger.info("Provisioned organization %s from identity provider", organization.pk)
    return organization


def _membership_parts(data: dict[str, Any]) -> tuple[dict, dict]:
    organization = data.get("organization") or {}
    user_data = data.get("public_user_data") or {}
    if not organization.get("id") or not user_data.get("user_id"):
        raise ValidationError("Membership event is missing organization or user id")
    return organization, user_data


@transaction.atomic
def handle_membership_created(data: dict[str, Any]) -> str:
    org_data, user_data = _membership_parts(data)
    organization = get_or_create_organization(org_data["id"], org_data.get("name") or "")
    external_user_id = user_data["user_id"]

    existing = (
        Employee.objects.for_organization(organization)
        .alive()
        .filter(external_user_id=external_user_id)
        .exists()
    )
    if existing:
        return "Employee already exists"

    def _create(number: str) -> Employee:
        return Employee.objects.create(
            organization=organization,
            external_user_id=external_user_id,
            employee_number=number,
            first_name=user_data.get("first_name") or "New",
            last_name=user_data.get("last_name") or "Employee",
            email=user_data.get("identifier") or "",
            position="Administrator" if data.get("role") == ADMIN_ROLE else "Team Member",
            employment_type=Employee.EmploymentType.FULL_TIME,
            status=Employee.Status.ACTIVE,
        )

    employee = create_with_number(_create, organization=organization, prefix=EMPLOYEE_PREFIX)
    logger.info("Created employee %s for user %s", employee.employee_number, external_user_id)
    return "Employee created successfully"


@transaction.atomic
def handle_membership_deleted(data: dict[str, Any]) -> str:
    org_data, user_data = _membership_parts(data)
    organization = Organization.objects.filter(external_id=org_data["id"]).first()
    if organization:
        now = timezone.now()
        updated = (
            Employee.objects.for_organization(organization)
            .alive()
            .filter(external_user_id=user_data["user_id"])
            .update(
                status=Employee.Status.TERMINATED,
                termination_date=timezone.localdate(),
                deleted_at=now,
            )
        )
        logger.info("Terminated %s employee row(s) for user %s", updated, user_data["user_id"])
    return "Employee deactivated"


EVENT_HANDLERS = {
    MEMBERSHIP_CREATED: handle_membership_created,
    MEMBERSHIP_DELETED: handle_membership_deleted,
}


def dispatch_identity_event(event: dict[str, Any]) -> str:
    handler = EVENT_HANDLERS.get(event.get("type") or "")
    if handler is None:
        return "Event received"
    return handler(event.get("data") or {})
