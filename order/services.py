import logging
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional

from django.conf import settings
from django.db import transaction
from django.db.models import F, Sum
from django.utils import timezone

from account.models import Customer
from account.services import CustomerService
from catalog.models import Product
from core.exceptions import (
    CompensationFailed,
    EmptyCart,
    InsufficientStock,
    InvalidAmount,
    InvalidInput,
    InvalidTransition,
    NotFound,
    OutOfStock,
    StockConflict,
    require_staff,
    require_user,
)
from core.money import ZERO, quantize, to_money
from inventory.models import StockReservation
from inventory.services import StockLedger, validate_quantity
from loyalty.services import LoyaltyLedger, WalletLedger
from notifications.services import NotificationService, NotificationTemplates
from payment.services import PaymentService
from .models import CartItem, Order, OrderItem, OrderStatusHistory

logger = logging.getLogger(__name__)


class CartService:
    """Per-user cart lines.

    Availability is checked on every mutation but nothing is reserved; the
    binding check happens again at checkout.
    """

    @staticmethod
    def _own(user, item) -> CartItem:
        pk = getattr(item, "pk", item)
        line = CartItem.objects.select_related("product").filter(pk=pk, user=user).first()
        if not line:
            raise NotFound("Cart item not found")
        return line

    @staticmethod
    def _ensure_available(user, product: Product, qty: int, exclude=None) -> None:
        if not product.is_sellable:
            raise OutOfStock(f"{product.name} is not available", product_id=str(product.pk), requested=qty, available=0)
        others = CartItem.objects.filter(user=user, product=product)
        if exclude is not None:
            others = others.exclude(pk=exclude.pk)
        in_cart = others.aggregate(total=Sum("quantity"))["total"] or 0
        available = StockLedger.available(product)
        if in_cart + qty > available:
            raise OutOfStock(
                f"Only {available} of {product.name} available",
                product_id=str(product.pk),
                requested=in_cart + qty,
                available=available,
            )

    @staticmethod
    def add(user, product: Product, qty: int = 1, size: str = "") -> CartItem:
        require_user(user)
        validate_quantity(qty)
        size = (size or "").strip()
        with transaction.atomic():
            existing = CartItem.objects.filter(user=user, product=product, size=size).first()
            if existing:
                return CartService.set_quantity(user, existing, existing.quantity + qty)
            CartService._ensure_available(user, product, qty)
            item = CartItem.objects.create(user=user, product=product, size=size, quantity=qty)
        logger.debug("Cart add user=%s product=%s qty=%d", user.pk, product.pk, qty)
        return item

    @staticmethod
    def set_quantity(user, item, qty: int) -> CartItem:
        require_user(user)
        validate_quantity(qty)
        line = CartService._own(user, item)
        CartService._ensure_available(user, line.product, qty, exclude=line)
        line.quantity = qty
        line.save(update_fields=["quantity", "updated_at"])
        return line

    @staticmethod
    def remove(user, item) -> None:
        require_user(user)
        CartService._own(user, item).delete()

    @staticmethod
    def clear(user) -> int:
        require_user(user)
        deleted, _ = CartItem.objects.filter(user=user).delete()
        return deleted

    @staticmethod
    def items(user):
        require_user(user)
        return CartItem.objects.filter(user=user).select_related("product", "product__inventory").order_by("created_at")

    @staticmethod
    def total_items(user) -> int:
        return CartService.items(user).aggregate(total=Sum("quantity"))["total"] or 0

    @staticmethod
    def total_price(user) -> Decimal:
        return sum((line.line_total for line in CartService.items(user)), ZERO)


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    discount: Decimal
    taxable: Decimal
    tax: Decimal
    shipping: Decimal
    total: Decimal

    def as_dict(self) -> Dict[str, str]:
        return {name: str(getattr(self, name)) for name in ("subtotal", "discount", "taxable", "tax", "shipping", "total")}


@dataclass
class CheckoutLine:
    product: Product
    quantity: int
    size: str = ""
    cart_item_id: Optional[uuid.UUID] = None

    @property
    def unit_price(self) -> Decimal:
        return self.product.price


@dataclass
class _Placement:
    reference: str
    reservations: List[StockReservation] = field(default_factory=list)
    order_id: Optional[uuid.UUID] = None


def compute_totals(lines, discount=ZERO, payment_method: str = Order.PaymentMethod.CASH,
                   include_shipping: bool = True) -> OrderTotals:
    """Price a basket.

    ``lines`` yields ``(unit_price, quantity)`` pairs. Tax applies to the
    discounted subtotal. Shipping is free from the configured threshold up;
    cash orders carry the COD surcharge on top of shipping.
    """
    subtotal = quantize(sum((Decimal(price) * qty for price, qty in lines), ZERO))
    discount = to_money(discount)
    if discount < 0 or discount > subtotal:
        raise InvalidAmount("Discount must be between zero and the subtotal", discount=str(discount))
    taxable = subtotal - discount
    tax = quantize(taxable * settings.STORE_TAX_RATE)
    shipping = ZERO
    if include_shipping and subtotal > 0:
        if subtotal < settings.STORE_FREE_SHIPPING_THRESHOLD:
            shipping = quantize(settings.STORE_SHIPPING_FEE)
        if payment_method == Order.PaymentMethod.CASH:
            shipping += quantize(settings.STORE_COD_SURCHARGE)
    return OrderTotals(
        subtotal=subtotal,
        discount=discount,
        taxable=taxable,
        tax=tax,
        shipping=shipping,
        total=taxable + tax + shipping,
    )


class CheckoutService:
    """Turns a cart (or a counter sale) into an Order.

    Stock is reserved first, then the order is written and the reservations
    committed in one transaction. If anything after the reservations fails
    the reservations are released, the half-built order removed and the
    original error re-raised.
    """

    @staticmethod
    def _generate_order_number():
        today = timezone.localdate().strftime("%Y%m%d")
        while True:
            candidate = f"ORD-{today}-{uuid.uuid4().hex[:6].upper()}"
            if not Order.objects.filter(order_number=candidate).exists():
                return candidate

    @staticmethod
    def _validate_method(payment_method: str) -> str:
        if payment_method not in Order.PaymentMethod.values:
            raise InvalidInput(f"Unknown payment method {payment_method!r}", payment_method=payment_method)
        return payment_method

    @staticmethod
    def _per_product(lines: List[CheckoutLine]):
        grouped = {}
        for line in lines:
            product, qty = grouped.get(line.product.pk, (line.product, 0))
            grouped[line.product.pk] = (product, qty + line.quantity)
        return grouped

    @classmethod
    def _find_conflicts(cls, lines: List[CheckoutLine]) -> List[dict]:
        conflicts = []
        for product, requested in cls._per_product(lines).values():
            available = StockLedger.available(product) if product.is_sellable else 0
            if requested <= available:
                continue
            for line in lines:
                if line.product.pk == product.pk:
                    conflicts.append(
                        {
                            "cart_item_id": str(line.cart_item_id) if line.cart_item_id else None,
                            "product_id": str(product.pk),
                            "product_name": product.name,
                            "requested": line.quantity,
                            "available": available,
                        }
                    )
        return conflicts

    @classmethod
    def _reserve_all(cls, placement: _Placement, lines: List[CheckoutLine]) -> None:
        try:
            for product, qty in cls._per_product(lines).values():
                placement.reservations.append(StockLedger.reserve(product, qty, reference=placement.reference))
        except Exception as exc:
            # Lost a race after re-validation, or the database gave up; hand back what we hold
            cls._compensate(placement, exc)
            raise

    @staticmethod
    def _create_items(order: Order, lines: List[CheckoutLine]) -> None:
        OrderItem.objects.bulk_create(
            [
                OrderItem(
                    order=order,
                    product=line.product,
                    product_name=line.product.name,
                    sku=line.product.sku or "",
                    size=line.size,
                    unit_price=line.unit_price,
                    quantity=line.quantity,
                    line_total=line.unit_price * line.quantity,
                )
                for line in lines
            ]
        )

    @staticmethod
    def _compensate(placement: _Placement, error: BaseException) -> None:
        logger.warning("Checkout %s failed, compensating: %s", placement.reference, error)
        try:
            for reservation in placement.reservations:
                if not StockLedger.release(reservation) and reservation.status == StockReservation.Status.COMMITTED:
                    StockLedger.return_to_stock(reservation, notes="Checkout rolled back")
            if placement.order_id:
                Order.objects.filter(pk=placement.order_id).delete()
        except Exception as exc:
            logger.exception("Compensation failed for checkout %s", placement.reference)
            raise CompensationFailed(
                "Checkout could not be rolled back; stock needs manual reconciliation",
                original=error,
                reference=placement.reference,
            ) from exc

    @classmethod
    def _place(cls, *, lines: List[CheckoutLine], totals: OrderTotals, order_fields: dict,
               payment_method: str, customer: Optional[Customer], actor, take_payment: bool,
               cart_user=None) -> Order:
        placement = _Placement(reference=uuid.uuid4().hex)
        cls._reserve_all(placement, lines)
        try:
            with transaction.atomic():
                order = Order.objects.create(
                    order_number=cls._generate_order_number(),
                    customer=customer,
                    payment_method=payment_method,
                    subtotal=totals.subtotal,
                    discount_amount=totals.discount,
                    tax_amount=totals.tax,
                    shipping_amount=totals.shipping,
                    total_amount=totals.total,
                    created_by=actor,
                    **order_fields,
                )
                placement.order_id = order.pk
                cls._create_items(order, lines)
                OrderStatusHistory.objects.create(
                    order=order, from_status="", to_status=order.status, notes="Order placed", changed_by=actor
                )

                if customer is not None:
                    Customer.objects.filter(pk=customer.pk).update(
                        total_orders=F("total_orders") + 1,
                        total_spent=F("total_spent") + totals.total,
                        updated_at=timezone.now(),
                    )
                if payment_method == Order.PaymentMethod.WALLET:
                    if customer is None:
                        raise InvalidInput("Wallet payment needs a customer")
                    WalletLedger.debit(
                        customer,
                        totals.total,
                        reference_type="order",
                        reference_id=order.order_number,
                        description=f"Payment for order {order.order_number}",
                        actor=actor,
                    )
                if take_payment and totals.total > 0:
                    PaymentService.record_payment(order, totals.total, payment_method, actor=actor)

                for reservation in placement.reservations:
                    reservation.order = order
                    StockReservation.objects.filter(pk=reservation.pk).update(order=order)
                    StockLedger.commit(reservation, actor=actor)

                if cart_user is not None:
                    CartItem.objects.filter(
                        user=cart_user, pk__in=[line.cart_item_id for line in lines]
                    ).delete()
        except Exception as exc:
            cls._compensate(placement, exc)
            raise

        order.refresh_from_db()
        logger.info("Placed order %s (%s, total %s)", order.order_number, order.source, order.total_amount)
        if order.user is not None:
            transaction.on_commit(
                lambda: NotificationService.notify_safely(order.user, NotificationTemplates.order_placed, order)
            )
        return order

    @classmethod
    def checkout(cls, user, address, payment_method: str, discount=ZERO, notes: str = "") -> Order:
        require_user(user)
        cls._validate_method(payment_method)
        address_text = address.as_text() if hasattr(address, "as_text") else str(address or "").strip()
        if not address_text:
            raise InvalidInput("A delivery address is required")

        lines = [
            CheckoutLine(product=item.product, quantity=item.quantity, size=item.size, cart_item_id=item.pk)
            for item in CartService.items(user)
        ]
        if not lines:
            raise EmptyCart("Your cart is empty")

        conflicts = cls._find_conflicts(lines)
        if conflicts:
            logger.warning("Checkout blocked for user=%s: %s", user.pk, conflicts)
            raise StockConflict(conflicts)

        totals = compute_totals([(line.unit_price, line.quantity) for line in lines], discount, payment_method)
        customer = CustomerService.for_user(user)
        prepaid = payment_method in Order.PREPAID_METHODS
        return cls._place(
            lines=lines,
            totals=totals,
            order_fields={
                "user": user,
                "source": Order.Source.ONLINE,
                "status": Order.Status.CONFIRMED if prepaid else Order.Status.PENDING,
                "customer_name": getattr(address, "full_name", "") or customer.name,
                "customer_phone": getattr(address, "phone", "") or customer.phone,
                "customer_email": user.email,
                "shipping_address": address_text,
                "notes": notes,
            },
            payment_method=payment_method,
            customer=customer,
            actor=user,
            take_payment=prepaid,
            cart_user=user,
        )

    @classmethod
    def pos_sale(cls, staff_user, lines, customer: Optional[Customer] = None, discount_percent=0,
                 payment_method: str = Order.PaymentMethod.CASH) -> Order:
        """Counter sale without a cart. ``lines`` yields dicts with product, quantity and optional size."""
        require_staff(staff_user)
        cls._validate_method(payment_method)
        checkout_lines = []
        for raw in lines:
            checkout_lines.append(
                CheckoutLine(
                    product=raw["product"],
                    quantity=validate_quantity(raw["quantity"]),
                    size=raw.get("size", ""),
                )
            )
        if not checkout_lines:
            raise EmptyCart("Add at least one item to the sale")

        percent = to_money(discount_percent)
        if percent < 0 or percent > 100:
            raise InvalidAmount("Discount percent must be between 0 and 100", discount_percent=str(percent))

        conflicts = cls._find_conflicts(checkout_lines)
        if conflicts:
            raise StockConflict(conflicts)

        priced = [(line.unit_price, line.quantity) for line in checkout_lines]
        subtotal = sum((price * qty for price, qty in priced), ZERO)
        discount = quantize(subtotal * percent / 100)
        totals = compute_totals(priced, discount, payment_method, include_shipping=False)
        return cls._place(
            lines=checkout_lines,
            totals=totals,
            order_fields={
                "user": customer.user if customer is not None else None,
                "source": Order.Source.POS,
                "status": Order.Status.CONFIRMED,
                "customer_name": customer.name if customer is not None else "Walk-in",
                "customer_phone": customer.phone if customer is not None else "",
                "customer_email": customer.email if customer is not None else "",
            },
            payment_method=payment_method,
            customer=customer,
            actor=staff_user,
            take_payment=True,
        )


class OrderStateMachine:
    """Fulfilment status of an order.

    pending -> confirmed -> processing -> ready -> delivered, with cancelled
    reachable from every non-terminal state.
    """

    TRANSITIONS = {
        Order.Status.PENDING: {Order.Status.CONFIRMED, Order.Status.CANCELLED},
        Order.Status.CONFIRMED: {Order.Status.PROCESSING, Order.Status.CANCELLED},
        Order.Status.PROCESSING: {Order.Status.READY, Order.Status.CANCELLED},
        Order.Status.READY: {Order.Status.DELIVERED, Order.Status.CANCELLED},
        Order.Status.DELIVERED: set(),
        Order.Status.CANCELLED: set(),
    }

    @classmethod
    def allowed(cls, status: str):
        return cls.TRANSITIONS.get(status, set())

    @classmethod
    def transition(cls, order: Order, new_status: str, actor, notes: str = "") -> Order:
        require_staff(actor)
        if new_status not in Order.Status.values:
            raise InvalidTransition(f"Unknown order status {new_status!r}", requested=new_status)
        current = order.status
        if new_status not in cls.allowed(current):
            raise InvalidTransition(
                f"Cannot move order {order.order_number} from {current} to {new_status}",
                current=current,
                requested=new_status,
            )

        now = timezone.now()
        stamps = {}
        if new_status == Order.Status.DELIVERED:
            stamps["delivered_at"] = now
        elif new_status == Order.Status.CANCELLED:
            stamps["cancelled_at"] = now

        with transaction.atomic():
            locked = Order.objects.select_for_update().get(pk=order.pk)
            if locked.status != current:
                raise InvalidTransition(
                    f"Order {order.order_number} was changed by someone else; reload and retry",
                    current=locked.status,
                    requested=new_status,
                )
            Order.objects.filter(pk=order.pk, status=current).update(status=new_status, updated_at=now, **stamps)
            order.status = new_status
            # payment may have moved since the caller loaded the order
            order.payment_status = locked.payment_status
            for name, value in stamps.items():
                setattr(order, name, value)
            OrderStatusHistory.objects.create(
                order=order, from_status=current, to_status=new_status, notes=notes, changed_by=actor
            )
            if new_status == Order.Status.CANCELLED:
                cls._on_cancelled(order, actor, notes)
            elif new_status == Order.Status.DELIVERED:
                cls._on_delivered(order, actor, now)

        logger.info("Order %s %s -> %s by %s", order.order_number, current, new_status, actor.pk)
        if order.user is not None:
            transaction.on_commit(
                lambda: NotificationService.notify_safely(order.user, NotificationTemplates.order_status_changed, order)
            )
        return order

    @staticmethod
    def _on_cancelled(order: Order, actor, notes: str) -> None:
        for reservation in StockReservation.objects.filter(order=order):
            if reservation.status == StockReservation.Status.HELD:
                StockLedger.release(reservation)
            elif reservation.status == StockReservation.Status.COMMITTED:
                StockLedger.return_to_stock(reservation, actor=actor, notes=notes or "Order cancelled")

        if order.payment_status in {Order.PaymentStatus.PAID, Order.PaymentStatus.PARTIAL}:
            refund = PaymentService.refund(order, actor=actor, notes=notes or "Order cancelled")
            if refund is not None and order.payment_method == Order.PaymentMethod.WALLET and order.customer_id:
                WalletLedger.credit(
                    order.customer,
                    refund.amount,
                    reference_type="order",
                    reference_id=order.order_number,
                    description=f"Refund for cancelled order {order.order_number}",
                    actor=actor,
                )

    @staticmethod
    def _on_delivered(order: Order, actor, when) -> None:
        if order.customer_id is None:
            return
        Customer.objects.filter(pk=order.customer_id).update(last_purchase_at=when, updated_at=when)
        LoyaltyLedger.earn_for_order(order, actor=actor)
