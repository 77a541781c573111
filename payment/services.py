import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import Sum

from core.exceptions import InvalidAmount, InvalidInput, InvalidTransition
from core.money import ZERO, to_money
from notifications.services import NotificationService, NotificationTemplates
from order.models import Order
from .models import Payment

logger = logging.getLogger(__name__)


class PaymentService:
    """Keeps ``Order.payment_status`` in step with the Payment rows of an order.

    The payment axis is independent of the fulfilment status:
    ``pending -> paid | partial | refunded``, ``partial -> paid | refunded``,
    ``paid -> refunded``. ``refunded`` is terminal.
    """

    ALLOWED = {
        Order.PaymentStatus.PENDING: {Order.PaymentStatus.PAID, Order.PaymentStatus.PARTIAL, Order.PaymentStatus.REFUNDED},
        Order.PaymentStatus.PARTIAL: {Order.PaymentStatus.PARTIAL, Order.PaymentStatus.PAID, Order.PaymentStatus.REFUNDED},
        Order.PaymentStatus.PAID: {Order.PaymentStatus.REFUNDED},
        Order.PaymentStatus.REFUNDED: set(),
    }

    @staticmethod
    def net_paid(order) -> Decimal:
        totals = {
            row["kind"]: row["total"]
            for row in Payment.objects.filter(order=order).values("kind").annotate(total=Sum("amount"))
        }
        return totals.get(Payment.Kind.PAYMENT, ZERO) - totals.get(Payment.Kind.REFUND, ZERO)

    @classmethod
    def _move(cls, order, current: str, new: str) -> None:
        if new not in cls.ALLOWED[current]:
            raise InvalidTransition(
                f"Payment status cannot move from {current} to {new}",
                current=current,
                requested=new,
            )
        updated = Order.objects.filter(pk=order.pk, payment_status=current).update(payment_status=new)
        if not updated:
            raise InvalidTransition("Payment status changed concurrently; reload the order")
        order.payment_status = new

    @classmethod
    def record_payment(cls, order, amount, method: str, actor=None, transaction_id: str = "", notes: str = "") -> Payment:
        amount = to_money(amount)
        if amount <= 0:
            raise InvalidAmount("Payment amount must be greater than zero", amount=str(amount))
        if method not in Order.PaymentMethod.values:
            raise InvalidInput(f"Unknown payment method {method!r}", method=method)

        with transaction.atomic():
            locked = Order.objects.select_for_update().get(pk=order.pk)
            if locked.status == Order.Status.CANCELLED:
                raise InvalidTransition("Cannot take payment for a cancelled order")
            current = locked.payment_status
            if current == Order.PaymentStatus.REFUNDED:
                raise InvalidTransition("Order has been refunded")
            paid = cls.net_paid(locked) + amount
            if paid > locked.total_amount:
                raise InvalidAmount(
                    f"Payment exceeds the outstanding balance of {locked.total_amount - paid + amount}",
                    amount=str(amount),
                )
            payment = Payment.objects.create(
                order=locked,
                kind=Payment.Kind.PAYMENT,
                amount=amount,
                method=method,
                transaction_id=transaction_id,
                notes=notes,
                created_by=actor,
            )
            new = Order.PaymentStatus.PAID if paid >= locked.total_amount else Order.PaymentStatus.PARTIAL
            cls._move(order, current, new)
            transaction.on_commit(
                lambda: NotificationService.notify_safely(order.user, NotificationTemplates.payment_received, order, payment)
            )

        logger.info("Recorded payment %s of %s on order=%s (%s)", payment.pk, amount, order.order_number, new)
        return payment

    @classmethod
    def refund(cls, order, actor=None, notes: str = ""):
        """Refund whatever was paid and mark the order refunded.

        Returns the refund row, or None when nothing had been paid. Refunding
        an already refunded order is a no-op.
        """
        with transaction.atomic():
            locked = Order.objects.select_for_update().get(pk=order.pk)
            current = locked.payment_status
            if current == Order.PaymentStatus.REFUNDED:
                order.payment_status = current
                return None
            outstanding = cls.net_paid(locked)
            refund = None
            if outstanding > 0:
                refund = Payment.objects.create(
                    order=locked,
                    kind=Payment.Kind.REFUND,
                    amount=outstanding,
                    method=locked.payment_method,
                    notes=notes,
                    created_by=actor,
                )
            cls._move(order, current, Order.PaymentStatus.REFUNDED)
        logger.info("Refunded %s on order=%s", outstanding, order.order_number)
        return refund
