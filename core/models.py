from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.utils import timezone
from django.utils.text import slugify


class Organization(models.Model):
    """Tenant. Every business row in the system hangs off one of these."""

    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255, unique=True)
    external_id = models.CharField(
        max_length=255,
        unique=True,
        blank=True,
        null=True,
        help_text="Organization id at the identity provider, when provisioned from it.",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name

    @classmethod
    def slug_from_external_id(cls, external_id: str) -> str:
        return slugify(external_id) or "organization"


class OrganizationMembership(models.Model):
    class Role(models.TextChoices):
        ADMIN = "ADMIN", "Administrator"
        ACCOUNTANT = "ACCOUNTANT", "Accountant"
        SALES_MANAGER = "SALES_MANAGER", "Sales manager"
        MEMBER = "MEMBER", "Member"

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="organization_memberships",
    )
    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name="memberships",
    )
    role = models.CharField(max_length=20, choices=Role.choices, default=Role.MEMBER)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["user", "organization"],
                name="uniq_membership_per_user_org",
            )
        ]

    def __str__(self):
        return f"{self.user} @ {self.organization}"


class TenantQuerySet(models.QuerySet):
    def for_organization(self, organization):
        return self.filter(organization=organization)

    def alive(self):
        return self.filter(deleted_at__isnull=True)


class SoftDeleteModel(models.Model):
    """
    Tenant-owned row that is tombstoned instead of deleted.

    Subclasses get `objects.for_organization(org).alive()` for the usual
    "live rows of this tenant" lookup.
    """

    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name="+",
    )
    deleted_at = models.DateTimeField(blank=True, null=True, db_index=True)
    deleted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name="+",
    )

    objects = TenantQuerySet.as_manager()

    class Meta:
        abstract = True

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def soft_delete(self, actor=None, *, extra_fields: list[str] | None = None):
        self.deleted_at = timezone.now()
        self.deleted_by = actor
        self.save(update_fields=["deleted_at", "deleted_by", *(extra_fields or [])])


class Customer(SoftDeleteModel):
    company_name = models.CharField(max_length=255)
    contact_person = models.CharField(max_length=255, blank=True)
    email = models.EmailField(max_length=255, blank=True)
    phone = models.CharField(max_length=50, blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["company_name"]

    def __str__(self):
        return self.company_name


class Vendor(SoftDeleteModel):
    company_name = models.CharField(max_length=255)
    contact_person = models.CharField(max_length=255, blank=True)
    email = models.EmailField(max_length=255, blank=True)
    phone = models.CharField(max_length=50, blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["company_name"]

    def __str__(self):
        return self.company_name


class DocumentSequence(models.Model):
    """Last number issued for one (organization, prefix, scope) series."""

    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name="document_sequences",
    )
    prefix = models.CharField(max_length=10)
    scope = models.CharField(
        max_length=64,
        blank=True,
        default="",
        help_text="Sub-series key, e.g. store:<id> for per-store order numbers.",
    )
    last_value = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["organization", "prefix", "scope"],
                name="uniq_document_sequence",
            )
        ]

    def __str__(self):
        return f"{self.prefix}{'/' + self.scope if self.scope else ''} @ {self.last_value}"


class AuditLog(models.Model):
    class Action(models.TextChoices):
        CREATE = "CREATE", "Create"
        UPDATE = "UPDATE", "Update"
        DELETE = "DELETE", "Delete"

    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name="audit_logs",
    )
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name="audit_logs",
    )
    action = models.CharField(max_length=10, choices=Action.choices, db_index=True)
    entity_type = models.CharField(max_length=100, db_index=True)
    entity_id = models.CharField(max_length=64, blank=True)
    old_values = models.JSONField(blank=True, null=True, encoder=DjangoJSONEncoder)
    new_values = models.JSONField(blank=True, null=True, encoder=DjangoJSONEncoder)
    remote_ip = models.GenericIPAddressField(blank=True, null=True)
    user_agent = models.TextField(blank=True, default="")
    timestamp = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["-timestamp"]

    def __str__(self):
        return f"{self.action} {self.entity_type}#{self.entity_id}"


class Employee(SoftDeleteModel):
    class EmploymentType(models.TextChoices):
        FULL_TIME = "FULL_TIME", "Full time"
        PART_TIME = "PART_TIME", "Part time"
        CONTRACT = "CONTRACT", "Contract"

    class Status(models.TextChoices):
        ACTIVE = "ACTIVE", "Active"
        TERMINATED = "TERMINATED", "Terminated"

    external_user_id = models.CharField(max_length=255, db_index=True)
    employee_number = models.CharField(max_length=20)
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    email = models.EmailField(max_length=255, blank=True)
    position = models.CharField(max_length=100, blank=True)
    employment_type = models.CharField(
        max_length=20,
        choices=EmploymentType.choices,
        default=EmploymentType.FULL_TIME,
    )
    hire_date = models.DateField(default=timezone.localdate)
    termination_date = models.DateField(blank=True, null=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.ACTIVE)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["employee_number"]
        constraints = [
            models.UniqueConstraint(
                fields=["organization", "employee_number"],
                name="uniq_employee_number_per_org",
            )
        ]

    def __str__(self):
        return f"{self.employee_number} {self.first_name} {self.last_name}"
