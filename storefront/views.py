import logging

from django.conf import settings
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST
from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from core.api import json_from_body
from core.exceptions import DomainError, ValidationError
from core.utils import organization_required
from .gateways import provider_display_info
from .models import PaymentProvider
from .serializers import (
    CheckoutSerializer,
    OrderSerializer,
    OrderStatusSerializer,
    PublicCategorySerializer,
    PublicProductSerializer,
    PublicStoreSerializer,
)
from .services.checkout import (
    DEFAULT_PAGE_SIZE,
    checkout,
    find_order_by_payment_reference,
    get_order_by_number,
    get_public_product,
    get_public_store,
    get_store_payment_info,
    list_public_categories,
    list_public_products,
    update_order_status,
    verify_and_complete,
)


logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100

# Reference query parameters providers append to the callback URL.
CALLBACK_REFERENCE_PARAMS = ("transaction_id", "reference", "trxref", "session_id")


def _base_url(request) -> str:
    configured = (getattr(settings, "STOREFRONT_BASE_URL", "") or "").strip()
    return (configured or request.build_absolute_uri("/")).rstrip("/")


def _int_param(request, name: str, default: int) -> int:
    raw = request.query_params.get(name)
    if raw in (None, ""):
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"'{name}' must be an integer.")
    if value < 0:
        raise ValidationError(f"'{name}' must be >= 0.")
    return value


class PublicAPIView(APIView):
    """Guest-facing endpoint: no session, no CSRF."""

    authentication_classes = []
    permission_classes = [permissions.AllowAny]


class PublicStoreView(PublicAPIView):
    def get(self, request, slug):
        return Response(PublicStoreSerializer(get_public_store(slug)).data)


class PublicProductListView(PublicAPIView):
    def get(self, request, slug):
        limit = min(_int_param(request, "limit", DEFAULT_PAGE_SIZE), MAX_PAGE_SIZE)
        offset = _int_param(request, "offset", 0)
        featured = request.query_params.get("featured", "").lower() in {"1", "true", "yes"}
        products, total = list_public_products(
            slug,
            search=request.query_params.get("search") or None,
            featured=featured,
            category=request.query_params.get("category") or None,
            limit=limit,
            offset=offset,
        )
        return Response({"results": PublicProductSerializer(products, many=True).data, "total": total})


class PublicProductDetailView(PublicAPIView):
    def get(self, request, slug, product_slug):
        return Response(PublicProductSerializer(get_public_product(slug, product_slug)).data)


class PublicCategoryListView(PublicAPIView):
    def get(self, request, slug):
        return Response({"results": PublicCategorySerializer(list_public_categories(slug), many=True).data})


class StorePaymentInfoView(PublicAPIView):
    def get(self, request, slug):
        return Response(get_store_payment_info(slug))


class CheckoutView(PublicAPIView):
    def post(self, request, slug):
        serializer = CheckoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = checkout(serializer.checkout_input(store_slug=slug, base_url=_base_url(request)))
        return Response(
            {
                "order": OrderSerializer(result.order).data,
                "payment_required": result.payment_required,
                "payment_url": result.payment_url,
                "payment_reference": result.payment_reference,
            },
            status=status.HTTP_201_CREATED,
        )


class OrderLookupView(PublicAPIView):
    def get(self, request, slug, order_number):
        return Response(OrderSerializer(get_order_by_number(slug, order_number)).data)


class PaymentCallbackView(PublicAPIView):
    def get(self, request, slug):
        order_id = request.query_params.get("orderId")
        if not order_id or not order_id.isdigit():
            raise ValidationError("orderId is required.")
        reference = next(
            (request.query_params[name] for name in CALLBACK_REFERENCE_PARAMS if request.query_params.get(name)),
            None,
        )
        order = verify_and_complete(int(order_id), reference, base_url=_base_url(request), store_slug=slug)
        return Response(
            {
                "order_number": order.order_number,
                "status": order.status,
                "payment_status": order.payment_status,
                "tracking_url": f"/store/{slug}/order/{order.order_number}",
            }
        )


class PaymentProviderListView(APIView):
    """Providers a store owner can choose from, with their display metadata."""

    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        return Response({"results": provider_display_info()})


class OrderStatusView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    @organization_required
    def post(self, request, pk, organization):
        serializer = OrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = update_order_status(
            organization=organization,
            actor=request.user,
            order_id=pk,
            status=serializer.validated_data["status"],
            request=request,
        )
        return Response(OrderSerializer(order).data)


# --- Provider webhooks ---


def _settle_from_webhook(order, request, provider_reference=None):
    if order is None:
        return JsonResponse({"message": "Order not found"})
    if order.is_paid:
        return JsonResponse({"message": "Already processed"})
    order = verify_and_complete(order.id, provider_reference, base_url=_base_url(request))
    if order.is_paid:
        return JsonResponse({"message": "Payment processed successfully"})
    return JsonResponse({"message": "Payment not verified"})


@csrf_exempt
@require_POST
def stripe_webhook(request):
    payload = json_from_body(request)
    if not isinstance(payload, dict):
        return JsonResponse({"error": "Invalid JSON"}, status=400)
    try:
        if payload.get("type") != "checkout.session.completed":
            return JsonResponse({"message": "Event received"})
        session = (payload.get("data") or {}).get("object") or {}
        order = find_order_by_payment_reference(session.get("id") or "", provider=PaymentProvider.STRIPE)
        if order is None:
            logger.info("Stripe webhook: no order for session %s", session.get("id"))
        return _settle_from_webhook(order, request)
    except DomainError as exc:
        return JsonResponse({"error": exc.message}, status=exc.status_code)
    except Exception:
        logger.exception("Stripe webhook processing failed")
        return JsonResponse({"error": "Webhook processing failed"}, status=500)


@csrf_exempt
@require_POST
def flutterwave_webhook(request):
    payload = json_from_body(request)
    if not isinstance(payload, dict):
        return JsonResponse({"error": "Invalid JSON"}, status=400)
    try:
        data = payload.get("data") or {}
        if payload.get("event") != "charge.completed" or data.get("status") != "successful":
            return JsonResponse({"message": "Event received"})
        order = find_order_by_payment_reference(data.get("tx_ref") or "", provider=PaymentProvider.FLUTTERWAVE)
        if order is None:
            logger.info("Flutterwave webhook: no order for tx_ref %s", data.get("tx_ref"))
            return _settle_from_webhook(None, request)
        expected_hash = order.store.flutterwave_webhook_hash
        if expected_hash and request.headers.get("verif-hash", "") != expected_hash:
            return JsonResponse({"error": "Invalid signature"}, status=401)
        transaction_id = data.get("id")
        return _settle_from_webhook(order, request, str(transaction_id) if transaction_id else None)
    except DomainError as exc:
        return JsonResponse({"error": exc.message}, status=exc.status_code)
    except Exception:
        logger.exception("Flutterwave webhook processing failed")
        return JsonResponse({"error": "Webhook processing failed"}, status=500)
