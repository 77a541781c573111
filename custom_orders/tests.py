from decimal import Decimal

from django.test import TestCase
from rest_framework.test import APIClient

from account.models import User
from core.exceptions import (
    ImmutableFieldViolation,
    InvalidInput,
    InvalidTransition,
    NotFound,
    PermissionDenied,
)
from notifications.models import Notification
from .models import CustomOrder, CustomOrderStatusHistory
from .services import CustomOrderService, allowed_next

Status = CustomOrder.Status


def submit_lehenga(user, **extra):
    fields = {
        "product_type": "Bridal lehenga",
        "budget_range": "20000-50000",
        "expected_delivery_timeline": "1-2-months",
        "preferred_fabrics": ["silk", "velvet"],
        "intended_occasion": "Wedding",
    }
    fields.update(extra)
    return CustomOrderService.submit(user, **fields)


class CustomOrderServiceTests(TestCase):
    def setUp(self):
        self.customer = User.objects.create_user(email="bride@example.com", password="Pass123!", full_name="Kavya")
        self.stranger = User.objects.create_user(email="stranger@example.com", password="Pass123!")
        self.staff = User.objects.create_user(email="artisan@example.com", password="Pass123!", role="STAFF")

    def _walk(self, order, *statuses):
        for new_status in statuses:
            if new_status == Status.QUOTE_SENT and order.estimated_price is None:
                CustomOrderService.set_estimated_price(order, "32000", self.staff)
            CustomOrderService.transition(order, new_status, self.staff)
        return order

    def test_submit_creates_order_and_history(self):
        order = submit_lehenga(self.customer, image_urls=["https://cdn.example.com/ref1.jpg"])

        self.assertRegex(order.order_number, r"^CUSTOM-\d{8}-\d{4}$")
        self.assertEqual(order.status, Status.SUBMITTED)
        self.assertIsNotNone(order.submitted_at)
        self.assertEqual(order.customer.user, self.customer)
        self.assertEqual(order.images.count(), 1)
        self.assertEqual(list(order.status_history.values_list("status", flat=True)), ["submitted"])

    def test_submit_validates_closed_sets(self):
        with self.assertRaises(InvalidInput):
            submit_lehenga(self.customer, budget_range="a lot")
        with self.assertRaises(InvalidInput):
            submit_lehenga(self.customer, expected_delivery_timeline="yesterday")
        with self.assertRaises(InvalidInput):
            submit_lehenga(self.customer, product_type="  ")
        self.assertFalse(CustomOrder.objects.exists())

    def test_happy_path_sets_each_timestamp_once(self):
        order = self._walk(
            submit_lehenga(self.customer),
            Status.IN_DISCUSSION, Status.QUOTE_SENT, Status.QUOTE_ACCEPTED,
            Status.IN_PRODUCTION, Status.READY, Status.DELIVERED,
        )

        stored = CustomOrder.objects.get(pk=order.pk)
        self.assertEqual(stored.status, Status.DELIVERED)
        for field in ("discussion_started_at", "quote_sent_at", "quote_accepted_at",
                      "production_started_at", "ready_at", "delivered_at"):
            self.assertIsNotNone(getattr(stored, field), field)
        self.assertEqual(stored.final_price, Decimal("32000.00"))
        self.assertEqual(CustomOrderStatusHistory.objects.filter(custom_order=order).count(), 7)
        self.assertEqual(allowed_next(stored.status), set())

    def test_skipping_a_step_is_rejected(self):
        order = submit_lehenga(self.customer)
        with self.assertRaises(InvalidTransition):
            CustomOrderService.transition(order, Status.IN_PRODUCTION, self.staff)
        self.assertEqual(CustomOrder.objects.get(pk=order.pk).status, Status.SUBMITTED)

    def test_quote_needs_an_estimate(self):
        order = self._walk(submit_lehenga(self.customer), Status.IN_DISCUSSION)
        with self.assertRaises(InvalidTransition):
            CustomOrderService.transition(order, Status.QUOTE_SENT, self.staff)

    def test_override_moves_between_non_terminal_states(self):
        order = self._walk(submit_lehenga(self.customer), Status.IN_DISCUSSION)
        CustomOrderService.set_estimated_price(order, "18000", self.staff)

        CustomOrderService.transition(order, Status.IN_PRODUCTION, self.staff, override=True, notes="Agreed on call")

        self.assertEqual(CustomOrder.objects.get(pk=order.pk).status, Status.IN_PRODUCTION)
        entry = CustomOrderStatusHistory.objects.get(custom_order=order, status=Status.IN_PRODUCTION)
        self.assertTrue(entry.is_override)

    def test_reentering_a_state_keeps_its_first_timestamp(self):
        order = self._walk(submit_lehenga(self.customer), Status.IN_DISCUSSION, Status.QUOTE_SENT)
        first = CustomOrder.objects.get(pk=order.pk)
        self.assertIsNotNone(first.discussion_started_at)
        self.assertIsNotNone(first.quote_sent_at)

        CustomOrderService.transition(order, Status.IN_DISCUSSION, self.staff, override=True, notes="Fabric change")
        CustomOrderService.transition(order, Status.QUOTE_SENT, self.staff)

        stored = CustomOrder.objects.get(pk=order.pk)
        self.assertEqual(stored.status, Status.QUOTE_SENT)
        self.assertEqual(stored.discussion_started_at, first.discussion_started_at)
        self.assertEqual(stored.quote_sent_at, first.quote_sent_at)
        self.assertEqual(order.quote_sent_at, first.quote_sent_at)

        history = CustomOrderStatusHistory.objects.filter(custom_order=order)
        self.assertEqual(history.filter(status=Status.IN_DISCUSSION).count(), 2)
        self.assertEqual(history.filter(status=Status.QUOTE_SENT).count(), 2)
        override = history.get(is_override=True)
        self.assertEqual(override.status, Status.IN_DISCUSSION)
        self.assertEqual(override.notes, "Fabric change")

    def test_override_cannot_leave_a_terminal_state(self):
        order = self._walk(submit_lehenga(self.customer), Status.CANCELLED)
        self.assertIsNotNone(CustomOrder.objects.get(pk=order.pk).cancelled_at)
        with self.assertRaises(InvalidTransition):
            CustomOrderService.transition(order, Status.IN_DISCUSSION, self.staff, override=True)

    def test_cancel_from_any_open_state(self):
        path = [Status.IN_DISCUSSION, Status.QUOTE_SENT, Status.QUOTE_ACCEPTED, Status.IN_PRODUCTION, Status.READY]
        for i in range(len(path) + 1):
            order = self._walk(submit_lehenga(self.customer), *path[:i])
            CustomOrderService.transition(order, Status.CANCELLED, self.staff)
            self.assertEqual(CustomOrder.objects.get(pk=order.pk).status, Status.CANCELLED)

    def test_customers_cannot_transition(self):
        order = submit_lehenga(self.customer)
        with self.assertRaises(PermissionDenied):
            CustomOrderService.transition(order, Status.IN_DISCUSSION, self.customer)

    def test_final_price_is_set_once(self):
        order = self._walk(submit_lehenga(self.customer), Status.IN_DISCUSSION)
        with self.assertRaises(InvalidTransition):
            CustomOrderService.set_final_price(order, "30000", self.staff)

        CustomOrderService.set_estimated_price(order, "30000", self.staff)
        CustomOrderService.transition(order, Status.QUOTE_SENT, self.staff)
        CustomOrderService.transition(order, Status.QUOTE_ACCEPTED, self.staff, final_price="28500")
        self.assertEqual(order.final_price, Decimal("28500.00"))

        with self.assertRaises(ImmutableFieldViolation):
            CustomOrderService.set_final_price(order, "29000", self.staff)
        with self.assertRaises(InvalidTransition):
            CustomOrderService.set_estimated_price(order, "31000", self.staff)

        stored = CustomOrder.objects.get(pk=order.pk)
        stored.final_price = Decimal("1.00")
        with self.assertRaises(ImmutableFieldViolation):
            stored.save()

    def test_assign_to_staff_only(self):
        order = submit_lehenga(self.customer)
        with self.assertRaises(InvalidInput):
            CustomOrderService.assign(order, self.stranger, self.staff)
        CustomOrderService.assign(order, self.staff, self.staff)
        self.assertEqual(CustomOrder.objects.get(pk=order.pk).assigned_to, self.staff)

    def test_internal_notes_are_hidden_from_customers(self):
        order = submit_lehenga(self.customer)
        CustomOrderService.post_message(order, self.customer, "Can we add zari work?")
        CustomOrderService.post_message(order, self.staff, "Zari adds two weeks", is_internal=True)
        CustomOrderService.post_message(order, self.staff, "Yes, we can")

        self.assertEqual(CustomOrderService.messages_for(order, self.staff).count(), 3)
        visible = list(CustomOrderService.messages_for(order, self.customer).values_list("message", flat=True))
        self.assertCountEqual(visible, ["Can we add zari work?", "Yes, we can"])

        with self.assertRaises(PermissionDenied):
            CustomOrderService.post_message(order, self.customer, "sneaky", is_internal=True)
        with self.assertRaises(NotFound):
            CustomOrderService.messages_for(order, self.stranger)
        with self.assertRaises(InvalidInput):
            CustomOrderService.post_message(order, self.customer, "   ")

    def test_status_change_notifies_customer(self):
        order = submit_lehenga(self.customer)
        with self.captureOnCommitCallbacks(execute=True):
            CustomOrderService.transition(order, Status.IN_DISCUSSION, self.staff)

        note = Notification.objects.get(user=self.customer)
        self.assertEqual(note.type, Notification.Type.CUSTOM_ORDER_STATUS_CHANGED)

    def test_submission_notifies_staff(self):
        with self.captureOnCommitCallbacks(execute=True):
            submit_lehenga(self.customer)
        self.assertTrue(
            Notification.objects.filter(user=self.staff, type=Notification.Type.CUSTOM_ORDER_SUBMITTED).exists()
        )


class CustomOrderApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.customer = User.objects.create_user(email="api_bride@example.com", password="Pass123!")
        self.other = User.objects.create_user(email="api_other@example.com", password="Pass123!")
        self.staff = User.objects.create_user(email="api_artisan@example.com", password="Pass123!", role="STAFF")

    def test_submit_and_list_own(self):
        self.client.force_authenticate(self.customer)
        resp = self.client.post(
            "/custom-orders/",
            {
                "product_type": "Embroidered jacket",
                "budget_range": "5000-10000",
                "expected_delivery_timeline": "2-4-weeks",
                "preferred_fabrics": ["khadi"],
                "image_urls": ["https://cdn.example.com/jacket.png"],
            },
            format="json",
        )
        self.assertEqual(resp.status_code, 201, resp.data)
        self.assertEqual(resp.data["status"], "submitted")
        self.assertEqual(len(resp.data["images"]), 1)

        submit_lehenga(self.other)
        listing = self.client.get("/custom-orders/")
        self.assertEqual(len(listing.data), 1)

        self.client.force_authenticate(self.staff)
        self.assertEqual(len(self.client.get("/custom-orders/").data), 2)

    def test_detail_hidden_from_other_customers(self):
        order = submit_lehenga(self.customer)
        self.client.force_authenticate(self.other)
        resp = self.client.get(f"/custom-orders/{order.id}/")
        self.assertEqual(resp.status_code, 404)

    def test_staff_pricing_and_transition(self):
        order = submit_lehenga(self.customer)
        self.client.force_authenticate(self.customer)
        denied = self.client.post(f"/custom-orders/{order.id}/status/", {"status": "in_discussion"}, format="json")
        self.assertEqual(denied.status_code, 403)

        self.client.force_authenticate(self.staff)
        priced = self.client.post(f"/custom-orders/{order.id}/price/", {"estimated_price": "25000.00"}, format="json")
        self.assertEqual(priced.status_code, 200, priced.data)

        moved = self.client.post(f"/custom-orders/{order.id}/status/", {"status": "in_discussion"}, format="json")
        self.assertEqual(moved.status_code, 200, moved.data)
        bad = self.client.post(f"/custom-orders/{order.id}/status/", {"status": "ready"}, format="json")
        self.assertEqual(bad.status_code, 409)
        self.assertEqual(bad.data["code"], "InvalidTransition")

    def test_messages_endpoint(self):
        order = submit_lehenga(self.customer)
        self.client.force_authenticate(self.customer)
        posted = self.client.post(f"/custom-orders/{order.id}/messages/", {"message": "Hello"}, format="json")
        self.assertEqual(posted.status_code, 201, posted.data)

        self.client.force_authenticate(self.staff)
        self.client.post(f"/custom-orders/{order.id}/messages/", {"message": "Note", "is_internal": True}, format="json")

        self.client.force_authenticate(self.customer)
        listing = self.client.get(f"/custom-orders/{order.id}/messages/")
        self.assertEqual([m["message"] for m in listing.data], ["Hello"])
