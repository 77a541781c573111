import uuid
from django.db import models
from django.conf import settings

from core.models import SnapshotModel
from order.models import Order


class Payment(SnapshotModel):
    """One money movement against an order; refunds are rows of kind ``refund``."""

    class Kind(models.TextChoices):
        PAYMENT = "payment", "Payment"
        REFUND = "refund", "Refund"

    append_only = True

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name="payments"
    )
    kind = models.CharField(max_length=10, choices=Kind.choices, default=Kind.PAYMENT)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    method = models.CharField(max_length=20, choices=Order.PaymentMethod.choices)
    transaction_id = models.CharField(max_length=150, blank=True)  # UPI ref / card slip number
    notes = models.TextField(blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["order", "kind"], name="payment_order_kind_idx"),
            models.Index(fields=["transaction_id"], name="payment_txn_idx"),
        ]
        constraints = [
            models.CheckConstraint(condition=models.Q(amount__gt=0), name="payment_amount_positive"),
        ]

    def __str__(self):
        return f"{self.order_id} - {self.kind} {self.amount}"
