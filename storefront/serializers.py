from rest_framework import serializers

from .models import OnlineCategory, OnlineOrder, OnlineOrderItem, OnlineProduct, OnlineStore
from .services.checkout import CartItem, CheckoutInput


class CartItemSerializer(serializers.Serializer):
    product_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1)


class CheckoutSerializer(serializers.Serializer):
    customer_name = serializers.CharField(max_length=255)
    customer_email = serializers.EmailField(max_length=255)
    shipping_address = serializers.CharField()
    billing_address = serializers.CharField(required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    items = CartItemSerializer(many=True, allow_empty=False)

    def validate_items(self, value):
        product_ids = [row["product_id"] for row in value]
        if len(set(product_ids)) != len(product_ids):
            raise serializers.ValidationError("Each product may appear only once in the cart.")
        return value

    def checkout_input(self, *, store_slug: str, base_url: str) -> CheckoutInput:
        data = self.validated_data
        return CheckoutInput(
            store_slug=store_slug,
            customer_name=data["customer_name"],
            customer_email=data["customer_email"],
            shipping_address=data["shipping_address"],
            billing_address=data.get("billing_address", ""),
            notes=data.get("notes", ""),
            items=[CartItem(**row) for row in data["items"]],
            base_url=base_url,
        )


class OrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=OnlineOrder.Status.choices)


class CategoryRefSerializer(serializers.ModelSerializer):
    class Meta:
        model = OnlineCategory
        fields = ["name", "slug"]
        read_only_fields = fields


class PublicCategorySerializer(serializers.ModelSerializer):
    product_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = OnlineCategory
        fields = ["name", "slug", "description", "product_count"]
        read_only_fields = fields


class PublicStoreSerializer(serializers.ModelSerializer):
    product_count = serializers.SerializerMethodField()
    categories = serializers.SerializerMethodField()

    class Meta:
        model = OnlineStore
        fields = [
            "name",
            "slug",
            "description",
            "currency",
            "tax_enabled",
            "shipping_enabled",
            "payment_provider",
            "product_count",
            "categories",
        ]
        read_only_fields = fields

    def get_product_count(self, obj):
        return obj.products.filter(is_active=True).count()

    def get_categories(self, obj):
        return CategoryRefSerializer(obj.categories.filter(is_active=True), many=True).data


class PublicProductSerializer(serializers.ModelSerializer):
    in_stock = serializers.SerializerMethodField()
    category = CategoryRefSerializer(read_only=True)

    class Meta:
        model = OnlineProduct
        fields = [
            "id",
            "name",
            "slug",
            "description",
            "price",
            "stock_quantity",
            "in_stock",
            "is_featured",
            "category",
        ]
        read_only_fields = fields

    def get_in_stock(self, obj):
        return obj.stock_quantity > 0


class OrderItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = OnlineOrderItem
        fields = ["product_id", "product_name", "sku", "unit_price", "quantity", "total_price"]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    store_name = serializers.CharField(source="store.name", read_only=True)
    currency = serializers.CharField(source="store.currency", read_only=True)
    items = OrderItemSerializer(many=True, read_only=True)

    class Meta:
        model = OnlineOrder
        fields = [
            "id",
            "order_number",
            "store_name",
            "currency",
            "customer_name",
            "customer_email",
            "shipping_address",
            "billing_address",
            "notes",
            "subtotal",
            "tax_amount",
            "shipping_amount",
            "discount_amount",
            "total_amount",
            "status",
            "payment_status",
            "payment_provider",
            "payment_reference",
            "paid_at",
            "created_at",
            "items",
        ]
        read_only_fields = fields
