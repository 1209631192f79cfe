from functools import wraps

from .exceptions import Unauthorized


def get_current_organization(user):
    """
    Return the Organization the user is acting for, or None.

    A user belongs to organizations through active OrganizationMembership rows.
    When there are several, the oldest membership wins.
    """
    if not user or not getattr(user, "is_authenticated", False):
        return None
    from .models import OrganizationMembership  # local import to avoid circular deps

    membership = (
        OrganizationMembership.objects
        .filter(user=user, is_active=True)
        .select_related("organization")
        .order_by("id")
        .first()
    )
    return membership.organization if membership else None


def require_organization(user):
    organization = get_current_organization(user)
    if organization is None:
        raise Unauthorized("No organization selected")
    return organization


def organization_required(view_method):
    """Decorator for DRF view methods: passes `organization=` or fails Unauthorized."""

    @wraps(view_method)
    def _wrapped(self, request, *args, **kwargs):
        organization = require_organization(request.user)
        return view_method(self, request, *args, organization=organization, **kwargs)

    return _wrapped


def actor_or_none(user):
    """The user when it is a real authenticated account, else None."""
    if user is None or not getattr(user, "is_authenticated", False):
        return None
    return user
