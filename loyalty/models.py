import uuid
from decimal import Decimal
from django.conf import settings
from django.db import models

from account.models import Customer
from core.models import SnapshotModel


class LoyaltyTransaction(SnapshotModel):
    class TransactionType(models.TextChoices):
        EARNED = "earned", "Earned"
        REDEEMED = "redeemed", "Redeemed"
        ADJUSTED_UP = "adjusted_up", "Adjusted up"
        ADJUSTED_DOWN = "adjusted_down", "Adjusted down"

    CREDIT_TYPES = frozenset({"earned", "adjusted_up"})

    append_only = True

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    customer = models.ForeignKey(Customer, related_name="loyalty_transactions", on_delete=models.CASCADE)
    points = models.PositiveIntegerField()  # magnitude; direction comes from transaction_type
    transaction_type = models.CharField(max_length=20, choices=TransactionType.choices)
    balance_before = models.IntegerField()
    balance_after = models.IntegerField()
    order = models.ForeignKey(
        "order.Order", related_name="loyalty_transactions", on_delete=models.SET_NULL, null=True, blank=True
    )
    description = models.CharField(max_length=255, blank=True)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [models.Index(fields=["customer", "created_at"], name="loyalty_txn_customer_idx")]

    @property
    def signed_points(self) -> int:
        return self.points if self.transaction_type in self.CREDIT_TYPES else -self.points


class WalletTransaction(SnapshotModel):
    class TransactionType(models.TextChoices):
        CREDIT = "credit", "Credit"
        DEBIT = "debit", "Debit"

    append_only = True

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    customer = models.ForeignKey(Customer, related_name="wallet_transactions", on_delete=models.CASCADE)
    transaction_type = models.CharField(max_length=10, choices=TransactionType.choices)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    balance_before = models.DecimalField(max_digits=12, decimal_places=2)
    balance_after = models.DecimalField(max_digits=12, decimal_places=2)
    reference_type = models.CharField(max_length=40, blank=True)  # "order", "topup", "redemption", ...
    reference_id = models.CharField(max_length=64, blank=True)
    description = models.CharField(max_length=255, blank=True)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [models.Index(fields=["customer", "created_at"], name="wallet_txn_customer_idx")]
        constraints = [
            models.CheckConstraint(condition=models.Q(amount__gt=0), name="wallet_amount_positive"),
        ]

    @property
    def signed_amount(self) -> Decimal:
        return self.amount if self.transaction_type == self.TransactionType.CREDIT else -self.amount


class RedeemableItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=120)
    description = models.TextField(blank=True)
    points_required = models.PositiveIntegerField()
    wallet_credit = models.DecimalField(max_digits=12, decimal_places=2)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["points_required"]

    def __str__(self):
        return f"{self.name} ({self.points_required} pts)"
