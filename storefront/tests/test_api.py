import json
from decimal import Decimal
from unittest import mock

import requests
from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from core.models import Organization, OrganizationMembership
from storefront.models import OnlineCategory, OnlineOrder, OnlineProduct, OnlineStore, PaymentProvider
from storefront.services.checkout import CartItem, CheckoutInput, checkout


User = get_user_model()


def _response(payload):
    return mock.Mock(json=mock.Mock(return_value=payload))


def _flutterwave_transaction(tx_ref, amount, currency="USD", status="successful"):
    return _response(
        {
            "status": "success",
            "data": {"id": 555, "status": status, "tx_ref": tx_ref, "amount": float(amount), "currency": currency},
        }
    )


class StorefrontApiTestMixin:
    def setUp(self):
        self.org = Organization.objects.create(name="Acme", slug="acme")
        self.store = OnlineStore.objects.create(
            organization=self.org,
            name="Acme Shop",
            slug="acme-shop",
            description="Mugs and more",
            stripe_public_key="pk_test_1",
            stripe_secret_key="sk_test_1",
            flutterwave_secret_key="FLWSECK-1",
            flutterwave_webhook_hash="hash-1",
        )
        self.mug = OnlineProduct.objects.create(
            store=self.store, name="Mug", slug="mug", price=Decimal("10.00"), stock_quantity=5, sort_order=1
        )
        self.plate = OnlineProduct.objects.create(
            store=self.store, name="Plate", slug="plate", price=Decimal("12.50"), stock_quantity=0, is_featured=True
        )
        OnlineProduct.objects.create(store=self.store, name="Retired", slug="retired", price="1.00", is_active=False)
        self.client = APIClient()

    def _use_provider(self, provider):
        self.store.payment_provider = provider
        self.store.save(update_fields=["payment_provider"])

    def _checkout_payload(self, **overrides):
        payload = {
            "customer_name": "Jane Doe",
            "customer_email": "jane@example.com",
            "shipping_address": "1 Main St",
            "items": [{"product_id": self.mug.id, "quantity": 2}],
        }
        payload.update(overrides)
        return payload

    def _hosted_order(self, provider, reference):
        self._use_provider(provider)
        with mock.patch("storefront.services.checkout.initialize_payment") as init:
            init.return_value = mock.Mock(success=True, payment_reference=reference, redirect_url="https://pay.example")
            return checkout(
                CheckoutInput(
                    store_slug=self.store.slug,
                    customer_name="Jane Doe",
                    customer_email="jane@example.com",
                    shipping_address="1 Main St",
                    items=[CartItem(product_id=self.mug.id, quantity=1)],
                )
            ).order


class PublicStoreApiTests(StorefrontApiTestMixin, TestCase):
    def test_store_details(self):
        response = self.client.get(reverse("store-public", args=["acme-shop"]))

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["name"], "Acme Shop")
        self.assertEqual(body["product_count"], 2)
        self.assertNotIn("stripe_secret_key", body)

    def test_inactive_or_unknown_store_is_404(self):
        self.store.is_active = False
        self.store.save(update_fields=["is_active"])
        for slug in ("acme-shop", "nope"):
            response = self.client.get(reverse("store-public", args=[slug]))
            self.assertEqual(response.status_code, 404)
            self.assertEqual(response.json(), {"error": "Store not found"})

    def test_products_are_paginated_featured_first(self):
        url = reverse("store-products", args=["acme-shop"])

        body = self.client.get(url).json()
        self.assertEqual(body["total"], 2)
        self.assertEqual([p["slug"] for p in body["results"]], ["plate", "mug"])
        self.assertEqual(body["results"][0]["price"], "12.50")
        self.assertFalse(body["results"][0]["in_stock"])

        page = self.client.get(url, {"limit": 1, "offset": 1}).json()
        self.assertEqual([p["slug"] for p in page["results"]], ["mug"])
        self.assertEqual(page["total"], 2)

        self.assertEqual(self.client.get(url, {"search": "mu"}).json()["total"], 1)
        self.assertEqual(self.client.get(url, {"featured": "true"}).json()["total"], 1)
        self.assertEqual(self.client.get(url, {"limit": "many"}).status_code, 400)

    def test_payment_info_exposes_public_key_only(self):
        self._use_provider(PaymentProvider.STRIPE)

        response = self.client.get(reverse("store-payment-info", args=["acme-shop"]))

        body = response.json()
        self.assertEqual(body["payment_provider"], "STRIPE")
        self.assertEqual(body["public_key"], "pk_test_1")
        self.assertEqual(body["provider_info"]["name"], "Stripe")
        self.assertNotIn("sk_test_1", json.dumps(body))


class CatalogApiTests(StorefrontApiTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.kitchen = OnlineCategory.objects.create(store=self.store, name="Kitchen", slug="kitchen", sort_order=1)
        self.gifts = OnlineCategory.objects.create(store=self.store, name="Gifts", slug="gifts", sort_order=2)
        OnlineCategory.objects.create(store=self.store, name="Archive", slug="archive", is_active=False)
        self.mug.category = self.kitchen
        self.mug.save(update_fields=["category"])
        self.plate.category = self.kitchen
        self.plate.save(update_fields=["category"])

    def test_product_detail(self):
        response = self.client.get(reverse("store-product-detail", args=["acme-shop", "mug"]))

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["name"], "Mug")
        self.assertEqual(body["price"], "10.00")
        self.assertEqual(body["category"], {"name": "Kitchen", "slug": "kitchen"})

    def test_inactive_or_unknown_product_is_404(self):
        for slug in ("retired", "nope"):
            response = self.client.get(reverse("store-product-detail", args=["acme-shop", slug]))
            self.assertEqual(response.status_code, 404)
            self.assertEqual(response.json(), {"error": "Product not found"})

        response = self.client.get(reverse("store-product-detail", args=["nope", "mug"]))
        self.assertEqual(response.json(), {"error": "Store not found"})

    def test_categories_list_active_product_counts(self):
        OnlineProduct.objects.filter(slug="retired").update(category=self.kitchen)

        response = self.client.get(reverse("store-categories", args=["acme-shop"]))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json()["results"],
            [
                {"name": "Kitchen", "slug": "kitchen", "description": "", "product_count": 2},
                {"name": "Gifts", "slug": "gifts", "description": "", "product_count": 0},
            ],
        )

    def test_store_details_list_active_categories(self):
        body = self.client.get(reverse("store-public", args=["acme-shop"])).json()
        self.assertEqual([c["slug"] for c in body["categories"]], ["kitchen", "gifts"])

    def test_products_filter_by_category(self):
        self.plate.category = self.gifts
        self.plate.save(update_fields=["category"])
        url = reverse("store-products", args=["acme-shop"])

        body = self.client.get(url, {"category": "gifts"}).json()
        self.assertEqual(body["total"], 1)
        self.assertEqual(body["results"][0]["slug"], "plate")
        self.assertEqual(body["results"][0]["category"]["slug"], "gifts")

        self.assertEqual(self.client.get(url, {"category": "kitchen", "search": "pl"}).json()["total"], 0)
        # Unknown slugs fall back to the full listing.
        self.assertEqual(self.client.get(url, {"category": "garden"}).json()["total"], 2)


class CheckoutApiTests(StorefrontApiTestMixin, TestCase):
    def test_cod_checkout(self):
        response = self.client.post(
            reverse("store-checkout", args=["acme-shop"]), self._checkout_payload(), format="json"
        )

        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertFalse(body["payment_required"])
        self.assertIsNone(body["payment_url"])
        self.assertEqual(body["payment_reference"], "COD-ORD-000001")
        order = body["order"]
        self.assertEqual(order["order_number"], "ORD-000001")
        self.assertEqual(order["status"], "CONFIRMED")
        self.assertEqual(
            (order["subtotal"], order["tax_amount"], order["shipping_amount"], order["total_amount"]),
            ("20.00", "3.20", "10.00", "33.20"),
        )
        self.assertEqual(order["items"][0]["product_name"], "Mug")

    def test_invalid_payload_is_400(self):
        url = reverse("store-checkout", args=["acme-shop"])
        bad_payloads = [
            self._checkout_payload(items=[]),
            self._checkout_payload(customer_email="not-an-email"),
            self._checkout_payload(items=[{"product_id": self.mug.id, "quantity": 0}]),
        ]
        for payload in bad_payloads:
            with self.subTest(payload=payload):
                self.assertEqual(self.client.post(url, payload, format="json").status_code, 400)
        self.assertFalse(OnlineOrder.objects.exists())

    def test_unavailable_product_is_400(self):
        response = self.client.post(
            reverse("store-checkout", args=["acme-shop"]),
            self._checkout_payload(items=[{"product_id": 999999, "quantity": 1}]),
            format="json",
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "Some products are unavailable"})

    @mock.patch("storefront.gateways.base.requests.post")
    def test_hosted_checkout_returns_payment_url(self, post):
        self._use_provider(PaymentProvider.STRIPE)
        post.return_value = _response({"id": "cs_test_1", "url": "https://checkout.stripe.com/c/cs_test_1"})

        response = self.client.post(
            reverse("store-checkout", args=["acme-shop"]),
            self._checkout_payload(),
            format="json",
        )

        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertTrue(body["payment_required"])
        self.assertEqual(body["payment_url"], "https://checkout.stripe.com/c/cs_test_1")
        self.assertEqual(body["order"]["status"], "PENDING")
        cancel_url = post.call_args.kwargs["data"]["cancel_url"]
        self.assertTrue(cancel_url.startswith("http://testserver/store/acme-shop/payment/callback?orderId="))

    @mock.patch("storefront.gateways.base.requests.post", side_effect=requests.ConnectionError("refused"))
    def test_gateway_failure_is_502(self, post):
        self._use_provider(PaymentProvider.STRIPE)

        response = self.client.post(
            reverse("store-checkout", args=["acme-shop"]), self._checkout_payload(), format="json"
        )

        self.assertEqual(response.status_code, 502)
        self.assertEqual(response.json(), {"error": "refused"})
        self.assertEqual(OnlineOrder.objects.get().payment_status, OnlineOrder.PaymentStatus.FAILED)

    def test_order_lookup(self):
        self.client.post(reverse("store-checkout", args=["acme-shop"]), self._checkout_payload(), format="json")

        found = self.client.get(reverse("store-order-lookup", args=["acme-shop", "ORD-000001"]))
        missing = self.client.get(reverse("store-order-lookup", args=["acme-shop", "ORD-000099"]))

        self.assertEqual(found.status_code, 200)
        self.assertEqual(found.json()["customer_email"], "jane@example.com")
        self.assertEqual(missing.status_code, 404)


class PaymentCallbackApiTests(StorefrontApiTestMixin, TestCase):
    @mock.patch("storefront.gateways.base.requests.get")
    def test_stripe_callback_settles_order(self, get):
        get.return_value = _response({"payment_status": "paid"})
        order = self._hosted_order(PaymentProvider.STRIPE, "cs_test_1")

        response = self.client.get(
            reverse("store-payment-callback", args=["acme-shop"]),
            {"orderId": order.id, "session_id": "cs_test_1"},
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(),
            {
                "order_number": "ORD-000001",
                "status": "CONFIRMED",
                "payment_status": "PAID",
                "tracking_url": "/store/acme-shop/order/ORD-000001",
            },
        )

    @mock.patch("storefront.gateways.base.requests.get")
    def test_flutterwave_callback_uses_transaction_id(self, get):
        get.return_value = _flutterwave_transaction("FLW-ORD-000001-1", "21.60")
        order = self._hosted_order(PaymentProvider.FLUTTERWAVE, "FLW-ORD-000001-1")

        response = self.client.get(
            reverse("store-payment-callback", args=["acme-shop"]),
            {"orderId": order.id, "status": "successful", "tx_ref": "FLW-ORD-000001-1", "transaction_id": "555"},
        )

        self.assertEqual(response.json()["payment_status"], "PAID")
        self.assertTrue(get.call_args.args[0].endswith("/transactions/555/verify"))

    def test_callback_requires_order_id(self):
        response = self.client.get(reverse("store-payment-callback", args=["acme-shop"]))
        self.assertEqual(response.status_code, 400)

    def test_callback_for_another_store_is_404(self):
        order = self._hosted_order(PaymentProvider.STRIPE, "cs_test_1")
        OnlineStore.objects.create(organization=self.org, name="Outlet", slug="outlet")

        response = self.client.get(reverse("store-payment-callback", args=["outlet"]), {"orderId": order.id})

        self.assertEqual(response.status_code, 404)


class ProviderWebhookTests(StorefrontApiTestMixin, TestCase):
    def _post(self, name, payload, **headers):
        return self.client.post(reverse(name), data=json.dumps(payload), content_type="application/json", **headers)

    @mock.patch("storefront.gateways.base.requests.get")
    def test_stripe_webhook_settles_after_verification(self, get):
        get.return_value = _response({"payment_status": "paid"})
        order = self._hosted_order(PaymentProvider.STRIPE, "cs_test_1")
        event = {"type": "checkout.session.completed", "data": {"object": {"id": "cs_test_1"}}}

        first = self._post("stripe_webhook", event)
        second = self._post("stripe_webhook", event)

        self.assertEqual(first.json(), {"message": "Payment processed successfully"})
        self.assertEqual(second.json(), {"message": "Already processed"})
        order.refresh_from_db()
        self.assertTrue(order.is_paid)
        get.assert_called_once()

    @mock.patch("storefront.gateways.base.requests.get")
    def test_stripe_webhook_does_not_trust_unverified_payload(self, get):
        get.return_value = _response({"payment_status": "unpaid"})
        order = self._hosted_order(PaymentProvider.STRIPE, "cs_test_1")

        response = self._post(
            "stripe_webhook", {"type": "checkout.session.completed", "data": {"object": {"id": "cs_test_1"}}}
        )

        self.assertEqual(response.json(), {"message": "Payment not verified"})
        order.refresh_from_db()
        self.assertFalse(order.is_paid)

    def test_stripe_webhook_other_events_and_unknown_sessions(self):
        self.assertEqual(self._post("stripe_webhook", {"type": "charge.refunded"}).json(), {"message": "Event received"})
        unknown = self._post(
            "stripe_webhook", {"type": "checkout.session.completed", "data": {"object": {"id": "cs_missing"}}}
        )
        self.assertEqual(unknown.json(), {"message": "Order not found"})

    def test_invalid_json_is_400(self):
        response = self.client.post(reverse("stripe_webhook"), data="{not json", content_type="application/json")
        self.assertEqual(response.status_code, 400)

    def test_get_is_not_allowed(self):
        self.assertEqual(self.client.get(reverse("flutterwave_webhook")).status_code, 405)

    @mock.patch("storefront.gateways.base.requests.get")
    def test_flutterwave_webhook_checks_hash(self, get):
        get.return_value = _flutterwave_transaction("FLW-ORD-000001-1", "21.60")
        order = self._hosted_order(PaymentProvider.FLUTTERWAVE, "FLW-ORD-000001-1")
        event = {"event": "charge.completed", "data": {"id": 555, "tx_ref": "FLW-ORD-000001-1", "status": "successful"}}

        rejected = self._post("flutterwave_webhook", event, HTTP_VERIF_HASH="wrong")
        self.assertEqual(rejected.status_code, 401)
        get.assert_not_called()

        accepted = self._post("flutterwave_webhook", event, HTTP_VERIF_HASH="hash-1")
        self.assertEqual(accepted.json(), {"message": "Payment processed successfully"})
        self.assertTrue(get.call_args.args[0].endswith("/transactions/555/verify"))
        order.refresh_from_db()
        self.assertTrue(order.is_paid)


class OrderStatusApiTests(StorefrontApiTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.user = User.objects.create_user(username="clerk", email="clerk@example.com", password="pass")
        OrganizationMembership.objects.create(user=self.user, organization=self.org)
        self.order = self._hosted_order(PaymentProvider.COD, "COD-ORD-000001")

    def test_member_can_update_status(self):
        self.client.force_authenticate(self.user)

        response = self.client.post(
            reverse("store-order-status", args=[self.order.id]), {"status": "SHIPPED"}, format="json"
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "SHIPPED")

    def test_invalid_status_is_400(self):
        self.client.force_authenticate(self.user)
        response = self.client.post(reverse("store-order-status", args=[self.order.id]), {"status": "LOST"}, format="json")
        self.assertEqual(response.status_code, 400)

    def test_anonymous_is_rejected(self):
        response = self.client.post(
            reverse("store-order-status", args=[self.order.id]), {"status": "SHIPPED"}, format="json"
        )
        self.assertIn(response.status_code, (401, 403))

    def test_other_organization_gets_404(self):
        outsider = User.objects.create_user(username="outsider", email="out@example.com", password="pass")
        OrganizationMembership.objects.create(
            user=outsider, organization=Organization.objects.create(name="Globex", slug="globex")
        )
        self.client.force_authenticate(outsider)

        response = self.client.post(
            reverse("store-order-status", args=[self.order.id]), {"status": "SHIPPED"}, format="json"
        )

        self.assertEqual(response.status_code, 404)


class PaymentProviderApiTests(StorefrontApiTestMixin, TestCase):
    def test_lists_every_provider_for_signed_in_users(self):
        self.client.force_authenticate(User.objects.create_user(username="owner", password="pass"))

        response = self.client.get(reverse("payment-providers"))

        self.assertEqual(response.status_code, 200)
        results = response.json()["results"]
        self.assertEqual(set(results), {choice.value for choice in PaymentProvider})
        self.assertEqual(results["FLUTTERWAVE"]["name"], "Flutterwave")

    def test_anonymous_is_rejected(self):
        response = self.client.get(reverse("payment-providers"))
        self.assertIn(response.status_code, (401, 403))
