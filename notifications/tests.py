from decimal import Decimal
from unittest.mock import patch

from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from account.models import User
from catalog.models import Product
from core.exceptions import InvalidInput
from inventory.services import StockLedger
from order.services import CartService, CheckoutService
from .models import DeviceToken, Notification
from .services import NotificationService, NotificationTemplates


class NotificationsApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create_user(email="user@example.com", password="Pass123!", role="CUSTOMER")
        self.other = User.objects.create_user(email="other@example.com", password="Pass123!", role="CUSTOMER")
        self.client.force_authenticate(self.user)

    def test_device_token_upsert_and_reassign(self):
        resp1 = self.client.post(
            "/api/notifications/devices/",
            {"token": "token-123", "device_type": "web"},
            format="json",
        )
        self.assertEqual(resp1.status_code, 200, resp1.data)
        token_row = DeviceToken.objects.get(token="token-123")
        self.assertEqual(token_row.user_id, self.user.id)
        self.assertTrue(token_row.is_active)

        self.client.force_authenticate(self.other)
        resp2 = self.client.post(
            "/api/notifications/devices/",
            {"token": "token-123", "device_type": "android"},
            format="json",
        )
        self.assertEqual(resp2.status_code, 200, resp2.data)
        token_row.refresh_from_db()
        self.assertEqual(token_row.user_id, self.other.id)
        self.assertEqual(token_row.device_type, "android")

    def test_device_token_deactivate(self):
        DeviceToken.objects.create(user=self.user, token="token-a", device_type="web", is_active=True)
        resp = self.client.delete("/api/notifications/devices/", {"token": "token-a"}, format="json")
        self.assertEqual(resp.status_code, 200, resp.data)
        self.assertEqual(resp.data["deactivated"], 1)
        self.assertFalse(DeviceToken.objects.get(token="token-a").is_active)

    def test_notification_read_endpoints(self):
        note1 = Notification.objects.create(
            user=self.user,
            type="payment_received",
            title="Payment Received",
            message="Order paid",
            payload={"type": "payment_received", "entity_id": "1", "entity_type": "order"},
        )
        note2 = Notification.objects.create(
            user=self.user,
            type="order_status_changed",
            title="Order Update",
            message="Ready for pickup",
            payload={"type": "order_status_changed", "entity_id": "1", "entity_type": "order"},
        )

        list_resp = self.client.get("/api/notifications/")
        self.assertEqual(list_resp.status_code, 200, list_resp.data)
        self.assertEqual(list_resp.data["count"], 2)
        self.assertEqual(list_resp.data["unread_count"], 2)

        filtered = self.client.get("/api/notifications/", {"type": "payment_received"})
        self.assertEqual(filtered.data["count"], 1)

        read_one = self.client.patch(f"/api/notifications/{note1.id}/read/", {}, format="json")
        self.assertEqual(read_one.status_code, 200, read_one.data)
        note1.refresh_from_db()
        self.assertTrue(note1.is_read)

        unread = self.client.get("/api/notifications/", {"unread": "true"})
        self.assertEqual(unread.data["count"], 1)

        read_all = self.client.post("/api/notifications/read-all/", {}, format="json")
        self.assertEqual(read_all.status_code, 200, read_all.data)
        note2.refresh_from_db()
        self.assertTrue(note2.is_read)

    def test_cannot_read_someone_elses_notification(self):
        note = Notification.objects.create(user=self.other, type="order_placed", title="t", message="m")
        resp = self.client.patch(f"/api/notifications/{note.id}/read/", {}, format="json")
        self.assertEqual(resp.status_code, 404)


@override_settings(STORE_TAX_RATE=Decimal("0"))
class NotificationServiceTests(TestCase):
    def setUp(self):
        self.buyer = User.objects.create_user(email="notify@example.com", password="Pass123!")
        self.staff = User.objects.create_user(email="desk@example.com", password="Pass123!", role="STAFF")
        self.product = Product.objects.create(name="Madhubani Print", price="2200.00")
        StockLedger.restock(self.product, 3)

    def test_checkout_notifies_after_commit(self):
        CartService.add(self.buyer, self.product, 1)
        with self.captureOnCommitCallbacks(execute=True):
            order = CheckoutService.checkout(self.buyer, "Patna", "cash")

        note = Notification.objects.get(user=self.buyer)
        self.assertEqual(note.type, Notification.Type.ORDER_PLACED)
        self.assertEqual(note.payload["order_number"], order.order_number)

    def test_failed_checkout_sends_nothing(self):
        CartService.add(self.buyer, self.product, 1)
        with patch.object(CheckoutService, "_create_items", side_effect=RuntimeError("boom")):
            with self.captureOnCommitCallbacks(execute=True) as callbacks:
                with self.assertRaises(RuntimeError):
                    CheckoutService.checkout(self.buyer, "Patna", "cash")
        self.assertEqual(callbacks, [])
        self.assertFalse(Notification.objects.exists())

    def test_push_failure_keeps_the_notification(self):
        with patch.object(NotificationService, "_send_push_to_user", side_effect=RuntimeError("fcm down")):
            note = NotificationService.notify(
                user=self.buyer,
                notification_type=Notification.Type.WALLET_CREDITED,
                title="Wallet Credited",
                message="INR 100 was added to your wallet.",
            )
        self.assertTrue(Notification.objects.filter(pk=note.pk).exists())

    def test_notify_safely_swallows_template_errors(self):
        def broken(*args):
            raise KeyError("missing")

        self.assertIsNone(NotificationService.notify_safely(self.buyer, broken))
        self.assertIsNone(NotificationService.notify_safely(None, NotificationTemplates.order_placed, None))
        self.assertFalse(Notification.objects.exists())

    def test_notify_staff_reaches_staff_only(self):
        CartService.add(self.buyer, self.product, 1)
        order = CheckoutService.checkout(self.buyer, "Patna", "cash")

        sent = NotificationService.notify_staff(NotificationTemplates.order_placed, order)

        self.assertEqual(sent, 1)
        self.assertEqual(list(Notification.objects.values_list("user_id", flat=True)), [self.staff.id])

    def test_mark_read_stamps_read_at_once(self):
        note = Notification.objects.create(user=self.buyer, type="points_earned", title="Points", message="m")
        first = NotificationService.mark_read(self.buyer, note.pk)
        stamp = first.read_at
        self.assertIsNotNone(stamp)
        self.assertEqual(NotificationService.mark_read(self.buyer, note.pk).read_at, stamp)
        self.assertEqual(NotificationService.unread_count(self.buyer), 0)

    def test_blank_device_token_is_rejected(self):
        with self.assertRaises(InvalidInput):
            NotificationService.register_device(self.buyer, "   ", "web")
