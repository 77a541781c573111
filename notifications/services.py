import json
import logging
from typing import Any, Dict, Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from core.exceptions import InvalidInput, NotFound, require_user
from .models import DeviceToken, Notification

logger = logging.getLogger(__name__)

# FCM error codes after which a token will never work again
DEAD_TOKEN_CODES = ("registration-token-not-registered", "invalid-argument")


def _firebase_credentials():
    from firebase_admin import credentials

    if settings.FCM_SERVICE_ACCOUNT_JSON:
        return credentials.Certificate(json.loads(settings.FCM_SERVICE_ACCOUNT_JSON))
    if settings.FCM_SERVICE_ACCOUNT_FILE:
        return credentials.Certificate(settings.FCM_SERVICE_ACCOUNT_FILE)
    return None


class NotificationService:
    """In-app inbox plus best-effort FCM push.

    The inbox row is the record; push delivery is attempted after it is
    stored and any push failure is logged, never raised.
    """

    _push_ready = None

    @classmethod
    def _firebase_ready(cls) -> bool:
        if cls._push_ready is not None:
            return cls._push_ready
        try:
            import firebase_admin

            if not firebase_admin._apps:
                cred = _firebase_credentials()
                if cred is None:
                    logger.info("FCM credentials are not configured; push is disabled")
                    cls._push_ready = False
                    return False
                options = {"projectId": settings.FCM_PROJECT_ID} if settings.FCM_PROJECT_ID else None
                firebase_admin.initialize_app(cred, options)
            cls._push_ready = True
        except Exception:
            logger.exception("Could not initialise Firebase")
            cls._push_ready = False
        return cls._push_ready

    @classmethod
    @transaction.atomic
    def notify(cls, *, user, notification_type: str, title: str, message: str,
               payload: Optional[Dict[str, Any]] = None) -> Notification:
        payload = payload or {}
        notification = Notification.objects.create(
            user=user, type=notification_type, title=title, message=message, payload=payload
        )
        try:
            cls._send_push_to_user(user=user, title=title, message=message, payload=payload)
        except Exception:
            logger.exception("Push failed for user=%s type=%s", user.pk, notification_type)
        return notification

    @classmethod
    def _send_push_to_user(cls, *, user, title: str, message: str, payload: Dict[str, Any]) -> None:
        if not cls._firebase_ready():
            return
        tokens = list(DeviceToken.objects.filter(user=user, is_active=True).values_list("token", flat=True))
        if not tokens:
            return

        from firebase_admin import messaging
        from firebase_admin.exceptions import FirebaseError

        data = {key: str(value) for key, value in payload.items()}
        for token in tokens:
            try:
                messaging.send(
                    messaging.Message(
                        notification=messaging.Notification(title=title, body=message),
                        data=data,
                        token=token,
                    )
                )
            except FirebaseError as exc:
                code = getattr(exc, "code", "") or str(exc)
                if any(dead in code for dead in DEAD_TOKEN_CODES):
                    DeviceToken.objects.filter(token=token).update(is_active=False)
                logger.warning("FCM rejected token=%s code=%s", token[:12], code)

    @classmethod
    def notify_safely(cls, user, template, *args) -> Optional[Notification]:
        """Build a message from ``template`` and send it; never raises."""
        if user is None:
            return None
        try:
            title, message, payload = template(*args)
            return cls.notify(
                user=user,
                notification_type=payload["type"],
                title=title,
                message=message,
                payload=payload,
            )
        except Exception:
            logger.exception("Failed to send %s notification to user=%s", template.__name__, user.pk)
            return None

    @classmethod
    def notify_staff(cls, template, *args) -> int:
        from account.models import User

        sent = 0
        staff = User.objects.filter(is_active=True, role__in=[User.Role.STAFF, User.Role.ADMIN])
        for member in staff:
            if cls.notify_safely(member, template, *args) is not None:
                sent += 1
        return sent

    @staticmethod
    def register_device(user, token: str, device_type: str) -> DeviceToken:
        """Bind ``token`` to ``user``; a token seen on another account moves over."""
        require_user(user)
        token = (token or "").strip()
        if not token:
            raise InvalidInput("Device token is required", field="token")
        device, _ = DeviceToken.objects.update_or_create(
            token=token,
            defaults={"user": user, "device_type": device_type, "is_active": True, "last_seen_at": timezone.now()},
        )
        return device

    @staticmethod
    def deactivate_devices(user, token: str = "") -> int:
        require_user(user)
        qs = DeviceToken.objects.filter(user=user, is_active=True)
        token = (token or "").strip()
        if token:
            qs = qs.filter(token=token)
        return qs.update(is_active=False)

    @staticmethod
    def inbox(user, unread_only: bool = False, notification_type: str = ""):
        require_user(user)
        qs = Notification.objects.filter(user=user)
        if unread_only:
            qs = qs.filter(is_read=False)
        if notification_type:
            qs = qs.filter(type=notification_type)
        return qs.order_by("-created_at")

    @staticmethod
    def unread_count(user) -> int:
        return Notification.objects.filter(user=user, is_read=False).count()

    @staticmethod
    def mark_read(user, pk) -> Notification:
        require_user(user)
        notification = Notification.objects.filter(pk=pk, user=user).first()
        if not notification:
            raise NotFound("Notification not found")
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = timezone.now()
            notification.save(update_fields=["is_read", "read_at"])
        return notification

    @staticmethod
    def mark_all_read(user) -> int:
        require_user(user)
        return Notification.objects.filter(user=user, is_read=False).update(is_read=True, read_at=timezone.now())


def _order_payload(kind: str, order, **extra) -> Dict[str, Any]:
    payload = {
        "type": kind,
        "entity_id": str(order.id),
        "entity_type": "order",
        "order_id": str(order.id),
        "order_number": order.order_number,
    }
    payload.update(extra)
    return payload


def _custom_order_payload(kind: str, custom_order, **extra) -> Dict[str, Any]:
    payload = {
        "type": kind,
        "entity_id": str(custom_order.id),
        "entity_type": "custom_order",
        "custom_order_id": str(custom_order.id),
        "order_number": custom_order.order_number,
    }
    payload.update(extra)
    return payload


class NotificationTemplates:
    @staticmethod
    def order_placed(order):
        return (
            "Order Placed",
            f"Your order #{order.order_number} for {settings.STORE_CURRENCY} {order.total_amount} has been placed.",
            _order_payload("order_placed", order, status=order.status),
        )

    @staticmethod
    def order_status_changed(order):
        return (
            "Order Update",
            f"Your order #{order.order_number} is now {order.get_status_display().lower()}.",
            _order_payload("order_status_changed", order, status=order.status),
        )

    @staticmethod
    def payment_received(order, payment):
        return (
            "Payment Received",
            f"We received {settings.STORE_CURRENCY} {payment.amount} for order #{order.order_number}.",
            _order_payload("payment_received", order, payment_id=str(payment.id)),
        )

    @staticmethod
    def custom_order_submitted(custom_order):
        return (
            "Custom Order Received",
            f"Custom order #{custom_order.order_number} ({custom_order.product_type}) was submitted.",
            _custom_order_payload("custom_order_submitted", custom_order),
        )

    @staticmethod
    def custom_order_status_changed(custom_order):
        return (
            "Custom Order Update",
            f"Custom order #{custom_order.order_number} is now {custom_order.get_status_display().lower()}.",
            _custom_order_payload("custom_order_status_changed", custom_order, status=custom_order.status),
        )

    @staticmethod
    def custom_order_message(custom_order, message):
        return (
            "New Message",
            f"New message on custom order #{custom_order.order_number}.",
            _custom_order_payload("custom_order_message", custom_order, message_id=str(message.id)),
        )

    @staticmethod
    def wallet_credited(entry):
        return (
            "Wallet Credited",
            f"{settings.STORE_CURRENCY} {entry.amount} was added to your wallet.",
            {
                "type": "wallet_credited",
                "entity_id": str(entry.id),
                "entity_type": "wallet_transaction",
                "balance": str(entry.balance_after),
            },
        )

    @staticmethod
    def points_earned(entry):
        return (
            "Points Earned",
            f"You earned {entry.points} loyalty points.",
            {
                "type": "points_earned",
                "entity_id": str(entry.id),
                "entity_type": "loyalty_transaction",
                "balance": str(entry.balance_after),
            },
        )
