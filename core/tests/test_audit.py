from unittest import mock

from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.test import RequestFactory, TestCase

from core.audit import record_audit, snapshot
from core.models import AuditLog, Customer, Organization


User = get_user_model()


class RecordAuditTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username="auditor", email="audit@example.com", password="pass")
        self.org = Organization.objects.create(name="Acme", slug="acme")
        self.customer = Customer.objects.create(organization=self.org, company_name="Wayne Enterprises")

    def test_records_entity_and_request_metadata(self):
        request = RequestFactory().post(
            "/",
            HTTP_X_FORWARDED_FOR="203.0.113.7, 10.0.0.1",
            HTTP_USER_AGENT="pytest-agent",
        )
        entry = record_audit(
            organization=self.org,
            actor=self.user,
            action=AuditLog.Action.UPDATE,
            entity=self.customer,
            old_values={"company_name": "Wayne"},
            new_values=snapshot(self.customer, ["company_name"]),
            request=request,
        )

        self.assertIsNotNone(entry)
        entry.refresh_from_db()
        self.assertEqual(entry.entity_type, "Customer")
        self.assertEqual(entry.entity_id, str(self.customer.id))
        self.assertEqual(entry.actor, self.user)
        self.assertEqual(entry.remote_ip, "203.0.113.7")
        self.assertEqual(entry.user_agent, "pytest-agent")
        self.assertEqual(entry.new_values, {"company_name": "Wayne Enterprises", "id": self.customer.id})

    def test_anonymous_actor_is_stored_as_null(self):
        entry = record_audit(
            organization=self.org,
            actor=AnonymousUser(),
            action=AuditLog.Action.CREATE,
            entity=self.customer,
        )
        self.assertIsNone(entry.actor)

    def test_failures_are_logged_not_raised(self):
        with mock.patch("core.audit.AuditLog.objects.create", side_effect=RuntimeError("boom")):
            with self.assertLogs("core.audit", level="ERROR"):
                entry = record_audit(
                    organization=self.org,
                    actor=self.user,
                    action=AuditLog.Action.DELETE,
                    entity=self.customer,
                )
        self.assertIsNone(entry)
        # The surrounding transaction stays usable.
        self.assertEqual(Customer.objects.count(), 1)
