import uuid
from django.conf import settings
from django.db import models


class DeviceToken(models.Model):
    """FCM registration token of a signed-in browser or phone."""

    class DeviceType(models.TextChoices):
        WEB = "web", "Web"
        ANDROID = "android", "Android"
        IOS = "ios", "iOS"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="device_tokens")
    token = models.TextField(unique=True)
    device_type = models.CharField(max_length=20, choices=DeviceType.choices)
    is_active = models.BooleanField(default=True)
    last_seen_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [models.Index(fields=["user", "is_active"], name="device_token_user_active_idx")]

    def __str__(self):
        return f"{self.device_type} token of {self.user_id}"


class Notification(models.Model):
    class Type(models.TextChoices):
        ORDER_PLACED = "order_placed", "Order placed"
        ORDER_STATUS_CHANGED = "order_status_changed", "Order status changed"
        PAYMENT_RECEIVED = "payment_received", "Payment received"
        CUSTOM_ORDER_SUBMITTED = "custom_order_submitted", "Custom order submitted"
        CUSTOM_ORDER_STATUS_CHANGED = "custom_order_status_changed", "Custom order status changed"
        CUSTOM_ORDER_MESSAGE = "custom_order_message", "Custom order message"
        WALLET_CREDITED = "wallet_credited", "Wallet credited"
        POINTS_EARNED = "points_earned", "Points earned"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="notifications")
    type = models.CharField(max_length=40, choices=Type.choices)
    title = models.CharField(max_length=120)
    message = models.TextField()
    # entity_type / entity_id point at the order, custom order or ledger row
    payload = models.JSONField(default=dict, blank=True)
    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user", "is_read"], name="notification_user_read_idx"),
            models.Index(fields=["user", "type"], name="notification_user_type_idx"),
        ]

    def __str__(self):
        return f"{self.type} for {self.user_id}"
