from django.contrib import admin

from .models import OnlineCategory, OnlineOrder, OnlineOrderItem, OnlineProduct, OnlineStore


@admin.register(OnlineStore)
class OnlineStoreAdmin(admin.ModelAdmin):
    list_display = ("name", "slug", "organization", "currency", "payment_provider", "is_active")
    list_filter = ("payment_provider", "is_active")
    search_fields = ("name", "slug")
    prepopulated_fields = {"slug": ("name",)}


@admin.register(OnlineCategory)
class OnlineCategoryAdmin(admin.ModelAdmin):
    list_display = ("name", "store", "sort_order", "is_active")
    list_filter = ("store", "is_active")
    search_fields = ("name", "slug")


@admin.register(OnlineProduct)
class OnlineProductAdmin(admin.ModelAdmin):
    list_display = ("name", "store", "category", "price", "stock_quantity", "is_active", "is_featured")
    list_filter = ("store", "category", "is_active", "is_featured")
    search_fields = ("name", "slug")


class OnlineOrderItemInline(admin.TabularInline):
    model = OnlineOrderItem
    extra = 0
    readonly_fields = ("product", "product_name", "sku", "unit_price", "quantity", "total_price")


@admin.register(OnlineOrder)
class OnlineOrderAdmin(admin.ModelAdmin):
    list_display = ("order_number", "store", "customer_email", "total_amount", "status", "payment_status", "created_at")
    list_filter = ("status", "payment_status", "payment_provider")
    search_fields = ("order_number", "customer_email", "payment_reference")
    readonly_fields = (
        "subtotal",
        "tax_amount",
        "shipping_amount",
        "discount_amount",
        "total_amount",
        "payment_reference",
        "payment_url",
        "payment_error",
        "paid_at",
    )
    inlines = [OnlineOrderItemInline]
