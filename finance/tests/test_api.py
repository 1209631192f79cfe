from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from core.models import Customer, Organization, OrganizationMembership, Vendor
from finance.models import Invoice


User = get_user_model()


class FinanceApiTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username="accountant", email="acc@example.com", password="pass")
        self.org = Organization.objects.create(name="Acme", slug="acme")
        OrganizationMembership.objects.create(
            user=self.user,
            organization=self.org,
            role=OrganizationMembership.Role.ACCOUNTANT,
        )
        self.customer = Customer.objects.create(organization=self.org, company_name="Wayne Enterprises")
        self.vendor = Vendor.objects.create(organization=self.org, company_name="Paper Supplies Ltd")
        self.client = APIClient()
        self.client.force_authenticate(self.user)

    def _create_invoice(self, **overrides):
        payload = {
            "customer_id": self.customer.id,
            "issue_date": "2026-01-01",
            "due_date": "2026-01-31",
            "line_items": [
                {"description": "Consulting", "quantity": "2", "unit_price": "50.00", "tax_rate": "16"},
                {"description": "Travel", "quantity": "1", "unit_price": "20.00"},
            ],
        }
        payload.update(overrides)
        return self.client.post(reverse("finance-invoices"), payload, format="json")

    def test_create_invoice_returns_totals_as_strings(self):
        response = self._create_invoice()

        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body["number"], "INV-000001")
        self.assertEqual(body["status"], "DRAFT")
        self.assertEqual(body["subtotal"], "120.00")
        self.assertEqual(body["tax_amount"], "16.00")
        self.assertEqual(body["total_amount"], "136.00")
        self.assertEqual(body["customer_name"], "Wayne Enterprises")
        self.assertEqual([line["description"] for line in body["line_items"]], ["Consulting", "Travel"])

    def test_client_supplied_totals_are_ignored(self):
        response = self._create_invoice(total_amount="1.00", subtotal="1.00")
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["total_amount"], "136.00")

    def test_invalid_line_items_are_rejected(self):
        response = self._create_invoice(line_items=[])
        self.assertEqual(response.status_code, 400)
        response = self._create_invoice(
            line_items=[{"description": "Bad", "quantity": "0", "unit_price": "1.00"}]
        )
        self.assertEqual(response.status_code, 400)
        self.assertFalse(Invoice.objects.exists())

    def test_unknown_customer_is_404(self):
        response = self._create_invoice(customer_id=999999)
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"error": "Customer not found"})

    def test_list_detail_status_and_delete(self):
        invoice_id = self._create_invoice().json()["id"]

        listing = self.client.get(reverse("finance-invoices"))
        self.assertEqual(listing.status_code, 200)
        self.assertEqual([row["id"] for row in listing.json()["results"]], [invoice_id])

        detail = self.client.get(reverse("finance-invoice-detail", args=[invoice_id]))
        self.assertEqual(detail.status_code, 200)
        self.assertEqual(detail.json()["payments"], [])

        status_response = self.client.post(
            reverse("finance-invoice-status", args=[invoice_id]),
            {"status": "SENT"},
            format="json",
        )
        self.assertEqual(status_response.status_code, 200)
        self.assertEqual(status_response.json()["status"], "SENT")

        bad_status = self.client.post(
            reverse("finance-invoice-status", args=[invoice_id]),
            {"status": "APPROVED"},
            format="json",
        )
        self.assertEqual(bad_status.status_code, 400)

        deleted = self.client.delete(reverse("finance-invoice-detail", args=[invoice_id]))
        self.assertEqual(deleted.status_code, 204)
        missing = self.client.get(reverse("finance-invoice-detail", args=[invoice_id]))
        self.assertEqual(missing.status_code, 404)

    def test_payment_flow_over_http(self):
        invoice_id = self._create_invoice(
            line_items=[{"description": "Retainer", "quantity": "1", "unit_price": "100.00"}]
        ).json()["id"]

        first = self.client.post(
            reverse("finance-payments"),
            {"invoice_id": invoice_id, "amount": "60.00", "method": "CASH", "payment_date": "2026-01-10"},
            format="json",
        )
        self.assertEqual(first.status_code, 201)
        self.assertEqual(first.json()["invoice_number"], "INV-000001")
        second = self.client.post(
            reverse("finance-payments"),
            {"invoice_id": invoice_id, "amount": "40.00", "method": "CHECK"},
            format="json",
        )
        self.assertEqual(second.status_code, 201)

        paid = self.client.get(reverse("finance-invoice-detail", args=[invoice_id])).json()
        self.assertEqual(paid["status"], "PAID")
        self.assertEqual(len(paid["payments"]), 2)

        conflict = self.client.delete(reverse("finance-invoice-detail", args=[invoice_id]))
        self.assertEqual(conflict.status_code, 409)

        reversed_response = self.client.delete(reverse("finance-payment-detail", args=[second.json()["id"]]))
        self.assertEqual(reversed_response.status_code, 204)
        after = self.client.get(reverse("finance-invoice-detail", args=[invoice_id])).json()
        self.assertEqual(after["paid_amount"], "60.00")
        self.assertEqual(after["status"], "SENT")

    def test_payment_with_both_targets_is_rejected(self):
        invoice_id = self._create_invoice().json()["id"]
        bill = self.client.post(
            reverse("finance-bills"),
            {
                "vendor_id": self.vendor.id,
                "due_date": "2026-02-28",
                "line_items": [{"description": "Paper", "quantity": "1", "unit_price": "9.99"}],
            },
            format="json",
        )
        self.assertEqual(bill.status_code, 201)
        self.assertEqual(bill.json()["number"], "BILL-000001")

        response = self.client.post(
            reverse("finance-payments"),
            {"invoice_id": invoice_id, "bill_id": bill.json()["id"], "amount": "5.00", "method": "CASH"},
            format="json",
        )
        self.assertEqual(response.status_code, 400)

    def test_other_tenant_rows_are_invisible(self):
        invoice_id = self._create_invoice().json()["id"]
        outsider = User.objects.create_user(username="outsider", email="out@example.com", password="pass")
        other_org = Organization.objects.create(name="Globex", slug="globex")
        OrganizationMembership.objects.create(user=outsider, organization=other_org)

        client = APIClient()
        client.force_authenticate(outsider)
        self.assertEqual(client.get(reverse("finance-invoice-detail", args=[invoice_id])).status_code, 404)
        self.assertEqual(client.get(reverse("finance-invoices")).json()["results"], [])

    def test_user_without_organization_is_unauthorized(self):
        loner = User.objects.create_user(username="loner", email="loner@example.com", password="pass")
        client = APIClient()
        client.force_authenticate(loner)
        response = client.get(reverse("finance-invoices"))
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {"error": "No organization selected"})

    def test_anonymous_is_rejected(self):
        response = APIClient().get(reverse("finance-invoices"))
        self.assertIn(response.status_code, (401, 403))
