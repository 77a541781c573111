import uuid
from django.conf import settings
from django.db import models
from django.db.models import F, Q
from catalog.models import Product
from core.models import SnapshotModel


class Inventory(models.Model):
    product = models.OneToOneField(Product, related_name="inventory", on_delete=models.CASCADE)
    quantity = models.PositiveIntegerField(default=0)  # on hand
    reserved_quantity = models.PositiveIntegerField(default=0)  # held by in-flight checkouts
    location = models.CharField(max_length=120, blank=True)
    last_restocked_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "Inventory"
        constraints = [
            models.CheckConstraint(
                condition=Q(reserved_quantity__lte=F("quantity")),
                name="inventory_reserved_within_on_hand",
            ),
        ]

    def __str__(self):
        return f"{self.product.name}: {self.available} available"

    @property
    def available(self) -> int:
        return self.quantity - self.reserved_quantity

    @property
    def is_low(self) -> bool:
        return self.available <= self.product.low_stock_threshold


class StockMovement(SnapshotModel):
    class MovementType(models.TextChoices):
        RESTOCK = "restock", "Restock"
        SALE = "sale", "Sale"
        ADJUSTMENT = "adjustment", "Adjustment"

    append_only = True

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    product = models.ForeignKey(Product, related_name="stock_movements", on_delete=models.CASCADE)
    quantity_change = models.IntegerField()  # positive adds on-hand stock, negative removes it
    movement_type = models.CharField(max_length=20, choices=MovementType.choices)
    reference_type = models.CharField(max_length=40, blank=True)  # "order", "manual", ...
    reference_id = models.CharField(max_length=64, blank=True)
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["product", "created_at"], name="inv_movement_product_idx"),
            models.Index(fields=["reference_type", "reference_id"], name="inv_movement_reference_idx"),
        ]


class StockReservation(models.Model):
    class Status(models.TextChoices):
        HELD = "held", "Held"
        COMMITTED = "committed", "Committed"
        RELEASED = "released", "Released"
        RETURNED = "returned", "Returned to stock"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    product = models.ForeignKey(Product, related_name="reservations", on_delete=models.CASCADE)
    quantity = models.PositiveIntegerField()
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.HELD)
    reference = models.CharField(max_length=64, blank=True)  # checkout attempt token
    order = models.ForeignKey(
        "order.Order", related_name="reservations", on_delete=models.SET_NULL, null=True, blank=True
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=["status"], name="inv_reservation_status_idx"),
            models.Index(fields=["reference"], name="inv_reservation_ref_idx"),
        ]

    def __str__(self):
        return f"{self.product_id} x{self.quantity} ({self.status})"
