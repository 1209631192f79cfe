from django.contrib import admin

from .models import Bill, BillLineItem, Invoice, InvoiceLineItem, Payment


class InvoiceLineItemInline(admin.TabularInline):
    model = InvoiceLineItem
    extra = 0


class BillLineItemInline(admin.TabularInline):
    model = BillLineItem
    extra = 0


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ("number", "organization", "customer", "status", "total_amount", "paid_amount", "deleted_at")
    list_filter = ("status", "organization")
    search_fields = ("number", "customer__company_name")
    readonly_fields = ("subtotal", "tax_amount", "total_amount", "paid_amount")
    inlines = [InvoiceLineItemInline]


@admin.register(Bill)
class BillAdmin(admin.ModelAdmin):
    list_display = ("number", "organization", "vendor", "status", "total_amount", "paid_amount", "deleted_at")
    list_filter = ("status", "organization")
    search_fields = ("number", "vendor__company_name")
    readonly_fields = ("subtotal", "tax_amount", "total_amount", "paid_amount")
    inlines = [BillLineItemInline]


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("number", "organization", "amount", "method", "invoice", "bill", "payment_date", "deleted_at")
    list_filter = ("method", "organization")
    search_fields = ("number", "reference_number")
