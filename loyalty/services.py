import logging
from decimal import Decimal, ROUND_FLOOR

from django.conf import settings
from django.db import transaction
from django.db.models import Sum

from account.models import Customer
from account.services import CustomerService
from core.exceptions import InsufficientBalance, InvalidAmount, NotFound, require_staff, require_user
from core.money import to_money
from notifications.services import NotificationService, NotificationTemplates
from .models import LoyaltyTransaction, RedeemableItem, WalletTransaction

logger = logging.getLogger(__name__)


def tier_for_points(points: int) -> str:
    thresholds = settings.LOYALTY_TIER_THRESHOLDS
    for tier in (Customer.LoyaltyTier.PLATINUM, Customer.LoyaltyTier.GOLD, Customer.LoyaltyTier.SILVER):
        if points >= thresholds[tier.value]:
            return tier.value
    return Customer.LoyaltyTier.BRONZE.value


def points_for_amount(amount) -> int:
    per_point = settings.LOYALTY_CURRENCY_PER_POINT
    return int((Decimal(amount) / per_point).to_integral_value(rounding=ROUND_FLOOR))


def _locked(customer) -> Customer:
    return Customer.objects.select_for_update().get(pk=customer.pk)


def _after_commit(user, template, *args):
    if user is None:
        return
    transaction.on_commit(lambda: NotificationService.notify_safely(user, template, *args))


class LoyaltyLedger:
    """Points balance per customer.

    Each posting locks the customer row, appends a LoyaltyTransaction with
    before/after balances and updates ``Customer.loyalty_points`` and
    ``loyalty_tier`` in the same transaction.
    """

    @staticmethod
    def _post(customer, points, transaction_type, *, order=None, description="", actor=None) -> LoyaltyTransaction:
        if isinstance(points, bool) or not isinstance(points, int) or points < 1:
            raise InvalidAmount("Points must be a positive whole number", points=points)
        with transaction.atomic():
            locked = _locked(customer)
            before = locked.loyalty_points
            signed = points if transaction_type in LoyaltyTransaction.CREDIT_TYPES else -points
            after = before + signed
            if after < 0:
                raise InsufficientBalance(
                    f"Only {before} points available",
                    balance=before,
                    requested=points,
                )
            entry = LoyaltyTransaction.objects.create(
                customer=locked,
                points=points,
                transaction_type=transaction_type,
                balance_before=before,
                balance_after=after,
                order=order,
                description=description,
                created_by=actor,
            )
            locked.loyalty_points = after
            locked.loyalty_tier = tier_for_points(after)
            locked.save(update_fields=["loyalty_points", "loyalty_tier", "updated_at"])
        customer.loyalty_points = locked.loyalty_points
        customer.loyalty_tier = locked.loyalty_tier
        logger.info("Loyalty %s %d for customer=%s (balance %d)", transaction_type, points, customer.pk, after)
        return entry

    @staticmethod
    def earn(customer, points: int, order=None, description: str = "", actor=None) -> LoyaltyTransaction:
        entry = LoyaltyLedger._post(
            customer, points, LoyaltyTransaction.TransactionType.EARNED,
            order=order, description=description, actor=actor,
        )
        _after_commit(customer.user, NotificationTemplates.points_earned, entry)
        return entry

    @staticmethod
    def earn_for_order(order, actor=None):
        """Award points for a delivered order once. Returns None when nothing is due."""
        if order.customer_id is None:
            return None
        existing = LoyaltyTransaction.objects.filter(
            order=order, transaction_type=LoyaltyTransaction.TransactionType.EARNED
        ).first()
        if existing:
            return existing
        points = points_for_amount(order.total_amount)
        if points < 1:
            return None
        return LoyaltyLedger.earn(
            order.customer, points, order=order, description=f"Order {order.order_number}", actor=actor
        )

    @staticmethod
    def spend(customer, points: int, order=None, description: str = "", actor=None) -> LoyaltyTransaction:
        return LoyaltyLedger._post(
            customer, points, LoyaltyTransaction.TransactionType.REDEEMED,
            order=order, description=description, actor=actor,
        )

    @staticmethod
    def adjust(customer, delta: int, actor, description: str = "") -> LoyaltyTransaction:
        require_staff(actor)
        if isinstance(delta, bool) or not isinstance(delta, int) or delta == 0:
            raise InvalidAmount("Adjustment must be a non-zero whole number", points=delta)
        kind = LoyaltyTransaction.TransactionType.ADJUSTED_UP if delta > 0 else LoyaltyTransaction.TransactionType.ADJUSTED_DOWN
        return LoyaltyLedger._post(customer, abs(delta), kind, description=description, actor=actor)

    @staticmethod
    def history(customer):
        return LoyaltyTransaction.objects.filter(customer=customer).order_by("-created_at")


class WalletLedger:
    """Store-credit balance per customer, same locking discipline as LoyaltyLedger."""

    @staticmethod
    def _post(customer, amount, transaction_type, *, reference_type="", reference_id="",
              description="", actor=None) -> WalletTransaction:
        amount = to_money(amount)
        if amount <= 0:
            raise InvalidAmount("Amount must be greater than zero", amount=str(amount))
        with transaction.atomic():
            locked = _locked(customer)
            before = locked.wallet_balance
            if transaction_type == WalletTransaction.TransactionType.CREDIT:
                after = before + amount
            else:
                after = before - amount
            if after < 0:
                raise InsufficientBalance(
                    f"Wallet balance is {before}",
                    balance=str(before),
                    requested=str(amount),
                )
            entry = WalletTransaction.objects.create(
                customer=locked,
                transaction_type=transaction_type,
                amount=amount,
                balance_before=before,
                balance_after=after,
                reference_type=reference_type,
                reference_id=str(reference_id),
                description=description,
                created_by=actor,
            )
            locked.wallet_balance = after
            locked.save(update_fields=["wallet_balance", "updated_at"])
        customer.wallet_balance = after
        logger.info("Wallet %s %s for customer=%s (balance %s)", transaction_type, amount, customer.pk, after)
        return entry

    @staticmethod
    def credit(customer, amount, reference_type: str = "", reference_id: str = "",
               description: str = "", actor=None) -> WalletTransaction:
        entry = WalletLedger._post(
            customer, amount, WalletTransaction.TransactionType.CREDIT,
            reference_type=reference_type, reference_id=reference_id, description=description, actor=actor,
        )
        _after_commit(customer.user, NotificationTemplates.wallet_credited, entry)
        return entry

    @staticmethod
    def debit(customer, amount, reference_type: str = "", reference_id: str = "",
              description: str = "", actor=None) -> WalletTransaction:
        return WalletLedger._post(
            customer, amount, WalletTransaction.TransactionType.DEBIT,
            reference_type=reference_type, reference_id=reference_id, description=description, actor=actor,
        )

    @staticmethod
    def top_up(user, amount) -> WalletTransaction:
        require_user(user)
        amount = to_money(amount)
        minimum = settings.WALLET_MIN_TOPUP
        if amount < minimum:
            raise InvalidAmount(f"Minimum top-up is {minimum}", amount=str(amount), minimum=str(minimum))
        customer = CustomerService.for_user(user)
        return WalletLedger.credit(customer, amount, reference_type="topup", description="Wallet top-up", actor=user)

    @staticmethod
    def history(customer):
        return WalletTransaction.objects.filter(customer=customer).order_by("-created_at")


def redeem(user, item: RedeemableItem):
    """Trade points for wallet credit. Both postings land or neither does."""
    require_user(user)
    if not item.is_active:
        raise NotFound("This reward is no longer available")
    customer = CustomerService.for_user(user)
    with transaction.atomic():
        spent = LoyaltyLedger.spend(
            customer, item.points_required, description=f"Redeemed {item.name}", actor=user
        )
        credited = WalletLedger.credit(
            customer,
            item.wallet_credit,
            reference_type="redemption",
            reference_id=str(item.pk),
            description=f"Redeemed {item.name}",
            actor=user,
        )
    return spent, credited


def reconcile(customer) -> bool:
    """True when both denormalized balances equal the sums of their ledgers."""
    customer = Customer.objects.get(pk=customer.pk)
    loyalty = LoyaltyTransaction.objects.filter(customer=customer)
    earned = loyalty.filter(transaction_type__in=LoyaltyTransaction.CREDIT_TYPES).aggregate(total=Sum("points"))["total"] or 0
    spent = loyalty.exclude(transaction_type__in=LoyaltyTransaction.CREDIT_TYPES).aggregate(total=Sum("points"))["total"] or 0

    wallet = WalletTransaction.objects.filter(customer=customer)
    credits = wallet.filter(transaction_type=WalletTransaction.TransactionType.CREDIT).aggregate(total=Sum("amount"))["total"] or Decimal("0")
    debits = wallet.filter(transaction_type=WalletTransaction.TransactionType.DEBIT).aggregate(total=Sum("amount"))["total"] or Decimal("0")

    points_ok = earned - spent == customer.loyalty_points
    wallet_ok = credits - debits == customer.wallet_balance
    if not (points_ok and wallet_ok):
        logger.warning("Ledger mismatch for customer=%s points_ok=%s wallet_ok=%s", customer.pk, points_ok, wallet_ok)
    return points_ok and wallet_ok
