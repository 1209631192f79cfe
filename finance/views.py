from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from core.utils import organization_required
from .models import Bill, Invoice
from .serializers import (
    BillCreateSerializer,
    BillDetailSerializer,
    BillSerializer,
    InvoiceCreateSerializer,
    InvoiceDetailSerializer,
    InvoiceSerializer,
    PaymentCreateSerializer,
    PaymentSerializer,
    StatusUpdateSerializer,
)
from .services.documents import (
    create_bill,
    create_invoice,
    delete_document,
    get_document,
    list_documents,
    update_document_status,
)
from .services.payments import apply_payment, list_payments, reverse_payment


class DocumentListCreateView(APIView):
    permission_classes = [permissions.IsAuthenticated]
    model = None
    serializer_class = None
    detail_serializer_class = None
    create_serializer_class = None

    def perform_create(self, request, organization, data, line_items):
        raise NotImplementedError

    @organization_required
    def get(self, request, organization):
        documents = list_documents(self.model, organization=organization)
        status_filter = request.query_params.get("status")
        if status_filter:
            documents = documents.filter(status=status_filter)
        return Response({"results": self.serializer_class(documents, many=True).data})

    @organization_required
    def post(self, request, organization):
        serializer = self.create_serializer_class(data=request.data)
        serializer.is_valid(raise_exception=True)
        document = self.perform_create(request, organization, serializer.validated_data, serializer.line_item_inputs())
        return Response(self.detail_serializer_class(document).data, status=status.HTTP_201_CREATED)


class InvoiceListCreateView(DocumentListCreateView):
    model = Invoice
    serializer_class = InvoiceSerializer
    detail_serializer_class = InvoiceDetailSerializer
    create_serializer_class = InvoiceCreateSerializer

    def perform_create(self, request, organization, data, line_items):
        return create_invoice(
            organization=organization,
            actor=request.user,
            customer_id=data["customer_id"],
            issue_date=data.get("issue_date"),
            due_date=data["due_date"],
            line_items=line_items,
            notes=data.get("notes", ""),
            request=request,
        )


class BillListCreateView(DocumentListCreateView):
    model = Bill
    serializer_class = BillSerializer
    detail_serializer_class = BillDetailSerializer
    create_serializer_class = BillCreateSerializer

    def perform_create(self, request, organization, data, line_items):
        return create_bill(
            organization=organization,
            actor=request.user,
            vendor_id=data["vendor_id"],
            issue_date=data.get("issue_date"),
            due_date=data["due_date"],
            line_items=line_items,
            notes=data.get("notes", ""),
            request=request,
        )


class DocumentDetailView(APIView):
    permission_classes = [permissions.IsAuthenticated]
    model = None
    detail_serializer_class = None

    @organization_required
    def get(self, request, pk, organization):
        document = get_document(self.model, organization=organization, document_id=pk)
        return Response(self.detail_serializer_class(document).data)

    @organization_required
    def delete(self, request, pk, organization):
        delete_document(self.model, organization=organization, actor=request.user, document_id=pk, request=request)
        return Response(status=status.HTTP_204_NO_CONTENT)


class InvoiceDetailView(DocumentDetailView):
    model = Invoice
    detail_serializer_class = InvoiceDetailSerializer


class BillDetailView(DocumentDetailView):
    model = Bill
    detail_serializer_class = BillDetailSerializer


class DocumentStatusView(APIView):
    permission_classes = [permissions.IsAuthenticated]
    model = None
    serializer_class = None

    @organization_required
    def post(self, request, pk, organization):
        serializer = StatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        document = update_document_status(
            self.model,
            organization=organization,
            actor=request.user,
            document_id=pk,
            status=serializer.validated_data["status"],
            request=request,
        )
        return Response(self.serializer_class(document).data)


class InvoiceStatusView(DocumentStatusView):
    model = Invoice
    serializer_class = InvoiceSerializer


class BillStatusView(DocumentStatusView):
    model = Bill
    serializer_class = BillSerializer


class PaymentListCreateView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    @organization_required
    def get(self, request, organization):
        payments = list_payments(organization=organization)
        return Response({"results": PaymentSerializer(payments, many=True).data})

    @organization_required
    def post(self, request, organization):
        serializer = PaymentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payment = apply_payment(
            organization=organization,
            actor=request.user,
            data=serializer.payment_input(),
            request=request,
        )
        return Response(PaymentSerializer(payment).data, status=status.HTTP_201_CREATED)


class PaymentDetailView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    @organization_required
    def delete(self, request, pk, organization):
        reverse_payment(organization=organization, actor=request.user, payment_id=pk, request=request)
        return Response(status=status.HTTP_204_NO_CONTENT)
