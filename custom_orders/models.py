import uuid
from django.conf import settings
from django.db import models

from account.models import Customer
from core.models import SnapshotModel


class CustomOrder(SnapshotModel):
    class Status(models.TextChoices):
        SUBMITTED = "submitted", "Submitted"
        IN_DISCUSSION = "in_discussion", "In discussion"
        QUOTE_SENT = "quote_sent", "Quote sent"
        QUOTE_ACCEPTED = "quote_accepted", "Quote accepted"
        IN_PRODUCTION = "in_production", "In production"
        READY = "ready", "Ready"
        DELIVERED = "delivered", "Delivered"
        CANCELLED = "cancelled", "Cancelled"

    class BudgetRange(models.TextChoices):
        UNDER_5000 = "under-5000", "Under ₹5,000"
        FROM_5000 = "5000-10000", "₹5,000 - ₹10,000"
        FROM_10000 = "10000-20000", "₹10,000 - ₹20,000"
        FROM_20000 = "20000-50000", "₹20,000 - ₹50,000"
        ABOVE_50000 = "above-50000", "Above ₹50,000"
        FLEXIBLE = "flexible", "Flexible"

    class Timeline(models.TextChoices):
        ONE_TO_TWO_WEEKS = "1-2-weeks", "1-2 Weeks"
        TWO_TO_FOUR_WEEKS = "2-4-weeks", "2-4 Weeks"
        ONE_TO_TWO_MONTHS = "1-2-months", "1-2 Months"
        TWO_TO_THREE_MONTHS = "2-3-months", "2-3 Months"
        FLEXIBLE = "flexible", "Flexible"

    # status -> header timestamp written on first entry
    STATUS_TIMESTAMPS = {
        "submitted": "submitted_at",
        "in_discussion": "discussion_started_at",
        "quote_sent": "quote_sent_at",
        "quote_accepted": "quote_accepted_at",
        "in_production": "production_started_at",
        "ready": "ready_at",
        "delivered": "delivered_at",
        "cancelled": "cancelled_at",
    }

    immutable_fields = ("order_number", "user", "customer", "submitted_at")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order_number = models.CharField(max_length=24, unique=True)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="custom_orders"
    )
    customer = models.ForeignKey(Customer, on_delete=models.SET_NULL, null=True, blank=True, related_name="custom_orders")

    product_type = models.CharField(max_length=80)
    preferred_fabrics = models.JSONField(default=list, blank=True)
    intended_occasion = models.CharField(max_length=80, blank=True)
    color_preferences = models.CharField(max_length=255, blank=True)
    size_requirements = models.TextField(blank=True)
    design_instructions = models.TextField(blank=True)
    special_requirements = models.TextField(blank=True)
    budget_range = models.CharField(max_length=20, choices=BudgetRange.choices)
    expected_delivery_timeline = models.CharField(max_length=20, choices=Timeline.choices)

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.SUBMITTED)
    estimated_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    final_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="assigned_custom_orders"
    )
    estimated_completion_date = models.DateField(null=True, blank=True)

    submitted_at = models.DateTimeField(null=True, blank=True)
    discussion_started_at = models.DateTimeField(null=True, blank=True)
    quote_sent_at = models.DateTimeField(null=True, blank=True)
    quote_accepted_at = models.DateTimeField(null=True, blank=True)
    production_started_at = models.DateTimeField(null=True, blank=True)
    ready_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="custom_order_status_idx"),
            models.Index(fields=["user", "created_at"], name="custom_order_user_idx"),
        ]

    def __str__(self):
        return f"{self.order_number} ({self.product_type})"

    def _frozen_attnames(self):
        attnames = super()._frozen_attnames()
        # final_price is set once; after that it is frozen like the identity fields
        stored = type(self)._default_manager.filter(pk=self.pk).values_list("final_price", flat=True).first()
        if stored is not None:
            attnames.append("final_price")
        return attnames

    @property
    def is_terminal(self) -> bool:
        return self.status in {self.Status.DELIVERED, self.Status.CANCELLED}


class CustomOrderImage(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    custom_order = models.ForeignKey(CustomOrder, related_name="images", on_delete=models.CASCADE)
    image_url = models.URLField()
    caption = models.CharField(max_length=255, blank=True)
    uploaded_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]


class CustomOrderStatusHistory(SnapshotModel):
    append_only = True

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    custom_order = models.ForeignKey(CustomOrder, related_name="status_history", on_delete=models.CASCADE)
    status = models.CharField(max_length=20, choices=CustomOrder.Status.choices)
    notes = models.TextField(blank=True)
    changed_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True)
    is_override = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        verbose_name_plural = "Custom order status history"


class CustomOrderMessage(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    custom_order = models.ForeignKey(CustomOrder, related_name="messages", on_delete=models.CASCADE)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True)
    message = models.TextField()
    is_internal = models.BooleanField(default=False)  # staff-only note
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
