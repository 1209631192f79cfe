from django.contrib import admin

from .models import AuditLog, Customer, DocumentSequence, Employee, Organization, OrganizationMembership, Vendor


admin.site.site_header = "BizSuite – System Admin"
admin.site.site_title = "BizSuite System Admin"


def _superuser_only(request):
    return request.user.is_active and request.user.is_superuser


admin.site.has_permission = _superuser_only


class MembershipInline(admin.TabularInline):
    model = OrganizationMembership
    extra = 0


@admin.register(Organization)
class OrganizationAdmin(admin.ModelAdmin):
    list_display = ("name", "slug", "external_id", "created_at")
    search_fields = ("name", "slug", "external_id")
    prepopulated_fields = {"slug": ("name",)}
    inlines = [MembershipInline]


@admin.register(Customer, Vendor)
class CounterpartyAdmin(admin.ModelAdmin):
    list_display = ("company_name", "organization", "email", "phone", "deleted_at")
    list_filter = ("organization",)
    search_fields = ("company_name", "email")


@admin.register(Employee)
class EmployeeAdmin(admin.ModelAdmin):
    list_display = ("employee_number", "first_name", "last_name", "organization", "status")
    list_filter = ("organization", "status")
    search_fields = ("employee_number", "email", "external_user_id")


@admin.register(DocumentSequence)
class DocumentSequenceAdmin(admin.ModelAdmin):
    list_display = ("organization", "prefix", "scope", "last_value", "updated_at")
    list_filter = ("prefix",)
    readonly_fields = ("last_value", "updated_at")


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ("timestamp", "organization", "actor", "action", "entity_type", "entity_id")
    list_filter = ("action", "entity_type")
    search_fields = ("entity_id",)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
