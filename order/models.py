import uuid
from decimal import Decimal
from django.db import models
from django.conf import settings

from catalog.models import Product
from core.models import SnapshotModel


class CartItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, related_name="cart_items", on_delete=models.CASCADE)
    product = models.ForeignKey(Product, related_name="cart_items", on_delete=models.CASCADE)
    size = models.CharField(max_length=20, blank=True, default="")  # "" when the product has no sizes
    quantity = models.PositiveIntegerField()

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ("user", "product", "size")
        ordering = ["created_at"]
        constraints = [
            models.CheckConstraint(condition=models.Q(quantity__gte=1), name="cart_item_quantity_positive"),
        ]

    @property
    def line_total(self) -> Decimal:
        return self.product.price * self.quantity


class Order(SnapshotModel):
    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        CONFIRMED = "confirmed", "Confirmed"
        PROCESSING = "processing", "Processing"
        READY = "ready", "Ready"
        DELIVERED = "delivered", "Delivered"
        CANCELLED = "cancelled", "Cancelled"

    class PaymentStatus(models.TextChoices):
        PENDING = "pending", "Pending"
        PARTIAL = "partial", "Partially paid"
        PAID = "paid", "Paid"
        REFUNDED = "refunded", "Refunded"

    class PaymentMethod(models.TextChoices):
        CASH = "cash", "Cash on delivery"
        UPI = "upi", "UPI"
        CARD = "card", "Card"
        ONLINE = "online", "Online"
        WALLET = "wallet", "Store wallet"

    class Source(models.TextChoices):
        ONLINE = "online", "Online store"
        POS = "pos", "Point of sale"
        WHATSAPP = "whatsapp", "WhatsApp"
        PHONE = "phone", "Phone"

    PREPAID_METHODS = frozenset(m.value for m in (PaymentMethod.UPI, PaymentMethod.CARD, PaymentMethod.ONLINE, PaymentMethod.WALLET))

    # Header fields are frozen at checkout; status, payment_status and notes stay mutable
    immutable_fields = (
        "order_number", "user", "customer", "source", "payment_method",
        "customer_name", "customer_phone", "customer_email", "shipping_address",
        "subtotal", "discount_amount", "tax_amount", "shipping_amount", "total_amount",
        "created_by",
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order_number = models.CharField(max_length=24, unique=True)

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="orders")
    customer = models.ForeignKey("account.Customer", on_delete=models.SET_NULL, null=True, blank=True, related_name="orders")
    source = models.CharField(max_length=20, choices=Source.choices, default=Source.ONLINE)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    payment_status = models.CharField(max_length=20, choices=PaymentStatus.choices, default=PaymentStatus.PENDING)
    payment_method = models.CharField(max_length=20, choices=PaymentMethod.choices)

    # Snapshot of who and where at checkout time
    customer_name = models.CharField(max_length=120, blank=True)
    customer_phone = models.CharField(max_length=20, blank=True)
    customer_email = models.EmailField(blank=True)
    shipping_address = models.TextField(blank=True)

    subtotal = models.DecimalField(max_digits=12, decimal_places=2)
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    tax_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    shipping_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)

    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="orders_created"
    )
    delivered_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="order_status_idx"),
            models.Index(fields=["payment_status"], name="order_payment_status_idx"),
            models.Index(fields=["user", "created_at"], name="order_user_created_idx"),
        ]

    def __str__(self):
        return self.order_number

    @property
    def is_terminal(self) -> bool:
        return self.status in {self.Status.DELIVERED, self.Status.CANCELLED}


class OrderItem(SnapshotModel):
    append_only = True

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(Order, related_name="items", on_delete=models.CASCADE)
    product = models.ForeignKey(Product, on_delete=models.SET_NULL, null=True)

    # Snapshot fields
    product_name = models.CharField(max_length=255)
    sku = models.CharField(max_length=100, blank=True)
    size = models.CharField(max_length=20, blank=True)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    quantity = models.PositiveIntegerField()
    line_total = models.DecimalField(max_digits=12, decimal_places=2)

    def __str__(self):
        return f"{self.product_name} x{self.quantity}"


class OrderStatusHistory(SnapshotModel):
    append_only = True

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(Order, related_name="status_history", on_delete=models.CASCADE)
    from_status = models.CharField(max_length=20, blank=True)
    to_status = models.CharField(max_length=20, choices=Order.Status.choices)
    notes = models.TextField(blank=True)
    changed_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        verbose_name_plural = "Order status history"
