from decimal import Decimal

from rest_framework import serializers

from .models import Bill, BillLineItem, Invoice, InvoiceLineItem, Payment
from .services.documents import LineItemInput
from .services.payments import PaymentInput


# --- Input ---


class LineItemInputSerializer(serializers.Serializer):
    description = serializers.CharField(max_length=500)
    quantity = serializers.DecimalField(max_digits=12, decimal_places=4)
    unit_price = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal("0"))
    tax_rate = serializers.DecimalField(
        max_digits=5,
        decimal_places=2,
        min_value=Decimal("0"),
        max_value=Decimal("100"),
        required=False,
        default=Decimal("0"),
    )

    def validate_quantity(self, value):
        if value <= 0:
            raise serializers.ValidationError("Quantity must be greater than zero.")
        return value


class DocumentCreateSerializer(serializers.Serializer):
    issue_date = serializers.DateField(required=False)
    due_date = serializers.DateField()
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    line_items = LineItemInputSerializer(many=True, allow_empty=False)

    def line_item_inputs(self) -> list[LineItemInput]:
        return [LineItemInput(**row) for row in self.validated_data["line_items"]]


class InvoiceCreateSerializer(DocumentCreateSerializer):
    customer_id = serializers.IntegerField()


class BillCreateSerializer(DocumentCreateSerializer):
    vendor_id = serializers.IntegerField()


class StatusUpdateSerializer(serializers.Serializer):
    status = serializers.CharField(max_length=20)


class PaymentCreateSerializer(serializers.Serializer):
    payment_date = serializers.DateField(required=False)
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    method = serializers.ChoiceField(choices=Payment.Method.choices)
    reference_number = serializers.CharField(required=False, allow_blank=True, default="", max_length=100)
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    invoice_id = serializers.IntegerField(required=False, allow_null=True)
    bill_id = serializers.IntegerField(required=False, allow_null=True)

    def validate_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError("Amount must be greater than zero.")
        return value

    def validate(self, attrs):
        if attrs.get("invoice_id") and attrs.get("bill_id"):
            raise serializers.ValidationError("A payment can target an invoice or a bill, not both.")
        return attrs

    def payment_input(self) -> PaymentInput:
        return PaymentInput(**self.validated_data)


# --- Output ---


class InvoiceLineItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = InvoiceLineItem
        fields = ["id", "position", "description", "quantity", "unit_price", "tax_rate", "amount"]
        read_only_fields = fields


class BillLineItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = BillLineItem
        fields = ["id", "position", "description", "quantity", "unit_price", "tax_rate", "amount"]
        read_only_fields = fields


DOCUMENT_FIELDS = [
    "id",
    "number",
    "status",
    "issue_date",
    "due_date",
    "notes",
    "subtotal",
    "tax_amount",
    "total_amount",
    "paid_amount",
    "balance_due",
    "overpaid_amount",
    "created_at",
    "updated_at",
]


class InvoiceSerializer(serializers.ModelSerializer):
    customer_id = serializers.IntegerField(read_only=True)
    customer_name = serializers.CharField(source="customer.company_name", read_only=True)
    balance_due = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)
    overpaid_amount = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)

    class Meta:
        model = Invoice
        fields = DOCUMENT_FIELDS + ["customer_id", "customer_name"]
        read_only_fields = fields


class BillSerializer(serializers.ModelSerializer):
    vendor_id = serializers.IntegerField(read_only=True)
    vendor_name = serializers.CharField(source="vendor.company_name", read_only=True)
    balance_due = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)
    overpaid_amount = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)

    class Meta:
        model = Bill
        fields = DOCUMENT_FIELDS + ["vendor_id", "vendor_name"]
        read_only_fields = fields


class PaymentSerializer(serializers.ModelSerializer):
    invoice_number = serializers.CharField(source="invoice.number", read_only=True, default=None)
    bill_number = serializers.CharField(source="bill.number", read_only=True, default=None)

    class Meta:
        model = Payment
        fields = [
            "id",
            "number",
            "payment_date",
            "amount",
            "method",
            "reference_number",
            "notes",
            "invoice_id",
            "invoice_number",
            "bill_id",
            "bill_number",
            "created_at",
        ]
        read_only_fields = fields


class InvoiceDetailSerializer(InvoiceSerializer):
    line_items = InvoiceLineItemSerializer(many=True, read_only=True)
    payments = serializers.SerializerMethodField()

    class Meta(InvoiceSerializer.Meta):
        fields = InvoiceSerializer.Meta.fields + ["line_items", "payments"]
        read_only_fields = fields

    def get_payments(self, obj):
        return PaymentSerializer(obj.payments.filter(deleted_at__isnull=True), many=True).data


class BillDetailSerializer(BillSerializer):
    line_items = BillLineItemSerializer(many=True, read_only=True)
    payments = serializers.SerializerMethodField()

    class Meta(BillSerializer.Meta):
        fields = BillSerializer.Meta.fields + ["line_items", "payments"]
        read_only_fields = fields

    def get_payments(self, obj):
        return PaymentSerializer(obj.payments.filter(deleted_at__isnull=True), many=True).data
