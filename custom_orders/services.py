import logging
import random

from django.db import transaction
from django.utils import timezone

from account.services import CustomerService
from core.exceptions import (
    ImmutableFieldViolation,
    InvalidAmount,
    InvalidInput,
    InvalidTransition,
    NotFound,
    PermissionDenied,
    require_staff,
    require_user,
)
from core.money import to_money
from notifications.services import NotificationService, NotificationTemplates
from .models import CustomOrder, CustomOrderImage, CustomOrderMessage, CustomOrderStatusHistory

logger = logging.getLogger(__name__)

Status = CustomOrder.Status

TERMINAL = {Status.DELIVERED, Status.CANCELLED}

HAPPY_PATH = {
    Status.SUBMITTED: Status.IN_DISCUSSION,
    Status.IN_DISCUSSION: Status.QUOTE_SENT,
    Status.QUOTE_SENT: Status.QUOTE_ACCEPTED,
    Status.QUOTE_ACCEPTED: Status.IN_PRODUCTION,
    Status.IN_PRODUCTION: Status.READY,
    Status.READY: Status.DELIVERED,
}

# Price can be quoted or re-quoted until the customer accepts
QUOTABLE = {Status.SUBMITTED, Status.IN_DISCUSSION, Status.QUOTE_SENT}
PRICED = {Status.QUOTE_ACCEPTED, Status.IN_PRODUCTION, Status.READY, Status.DELIVERED}


def allowed_next(status: str, override: bool = False):
    if status in TERMINAL:
        return set()
    if override:
        return {s for s in Status.values if s not in TERMINAL and s != status} | {Status.CANCELLED.value}
    return {HAPPY_PATH[status], Status.CANCELLED}


def _notify_after_commit(user, template, *args):
    if user is not None:
        transaction.on_commit(lambda: NotificationService.notify_safely(user, template, *args))


class CustomOrderService:
    """Made-to-order requests from submission to delivery.

    Every status change appends a CustomOrderStatusHistory row. Header
    timestamps (``quote_sent_at`` and friends) are written the first time a
    state is entered and never overwritten.
    """

    @staticmethod
    def _generate_order_number():
        today = timezone.localdate().strftime("%Y%m%d")
        while True:
            candidate = f"CUSTOM-{today}-{random.randint(0, 9999):04d}"
            if not CustomOrder.objects.filter(order_number=candidate).exists():
                return candidate

    @staticmethod
    def visible_to(user):
        require_user(user)
        qs = CustomOrder.objects.select_related("customer", "assigned_to")
        if user.is_store_staff:
            return qs
        return qs.filter(user=user)

    @staticmethod
    def get_for(user, pk) -> CustomOrder:
        order = CustomOrderService.visible_to(user).filter(pk=pk).first()
        if not order:
            raise NotFound("Custom order not found")
        return order

    @staticmethod
    def _check_visible(order: CustomOrder, user) -> None:
        require_user(user)
        if not user.is_store_staff and order.user_id != user.pk:
            raise NotFound("Custom order not found")

    @classmethod
    def submit(cls, user, *, product_type, budget_range, expected_delivery_timeline, preferred_fabrics=None,
               intended_occasion="", color_preferences="", size_requirements="", design_instructions="",
               special_requirements="", image_urls=()) -> CustomOrder:
        require_user(user)
        if not (product_type or "").strip():
            raise InvalidInput("Tell us what you would like made", field="product_type")
        if budget_range not in CustomOrder.BudgetRange.values:
            raise InvalidInput(f"Unknown budget range {budget_range!r}", field="budget_range")
        if expected_delivery_timeline not in CustomOrder.Timeline.values:
            raise InvalidInput(f"Unknown delivery timeline {expected_delivery_timeline!r}", field="expected_delivery_timeline")

        customer = CustomerService.for_user(user)
        now = timezone.now()
        with transaction.atomic():
            order = CustomOrder.objects.create(
                order_number=cls._generate_order_number(),
                user=user,
                customer=customer,
                product_type=product_type.strip(),
                preferred_fabrics=list(preferred_fabrics or []),
                intended_occasion=intended_occasion,
                color_preferences=color_preferences,
                size_requirements=size_requirements,
                design_instructions=design_instructions,
                special_requirements=special_requirements,
                budget_range=budget_range,
                expected_delivery_timeline=expected_delivery_timeline,
                status=Status.SUBMITTED,
                submitted_at=now,
            )
            CustomOrderStatusHistory.objects.create(
                custom_order=order, status=Status.SUBMITTED, notes="Request submitted", changed_by=user
            )
            for url in image_urls:
                CustomOrderImage.objects.create(custom_order=order, image_url=url, uploaded_by=user)
            transaction.on_commit(
                lambda: NotificationService.notify_staff(NotificationTemplates.custom_order_submitted, order)
            )
        logger.info("Custom order %s submitted by user=%s", order.order_number, user.pk)
        return order

    @classmethod
    def transition(cls, order: CustomOrder, new_status: str, actor, notes: str = "",
                   override: bool = False, final_price=None) -> CustomOrder:
        require_staff(actor)
        if new_status not in Status.values:
            raise InvalidTransition(f"Unknown custom order status {new_status!r}", requested=new_status)
        current = order.status
        if new_status not in allowed_next(current, override):
            raise InvalidTransition(
                f"Cannot move {order.order_number} from {current} to {new_status}",
                current=current,
                requested=new_status,
            )

        changes = {}
        if new_status == Status.QUOTE_SENT and order.estimated_price is None:
            raise InvalidTransition("Set an estimated price before sending the quote")
        if new_status == Status.QUOTE_ACCEPTED:
            if final_price is not None:
                final_price = to_money(final_price)
                if final_price <= 0:
                    raise InvalidAmount("Final price must be greater than zero", final_price=str(final_price))
            if order.final_price is not None:
                if final_price is not None and final_price != order.final_price:
                    raise ImmutableFieldViolation("Final price is already set", fields=["final_price"])
            else:
                price = final_price if final_price is not None else order.estimated_price
                if price is None:
                    raise InvalidTransition("A price is needed to accept the quote")
                changes["final_price"] = price

        now = timezone.now()
        stamp = CustomOrder.STATUS_TIMESTAMPS[new_status]

        with transaction.atomic():
            updated = CustomOrder.objects.filter(pk=order.pk, status=current).update(
                status=new_status, updated_at=now, **changes
            )
            if not updated:
                raise InvalidTransition(
                    f"{order.order_number} was changed by someone else; reload and retry",
                    current=current,
                    requested=new_status,
                )
            order.status = new_status
            for name, value in changes.items():
                setattr(order, name, value)
            # first entry only; re-entering a state keeps the original stamp
            if CustomOrder.objects.filter(pk=order.pk, **{f"{stamp}__isnull": True}).update(**{stamp: now}):
                setattr(order, stamp, now)
            is_override = override and new_status != Status.CANCELLED and new_status != HAPPY_PATH.get(current)
            CustomOrderStatusHistory.objects.create(
                custom_order=order, status=new_status, notes=notes, changed_by=actor, is_override=is_override
            )
            _notify_after_commit(order.user, NotificationTemplates.custom_order_status_changed, order)

        if is_override:
            logger.warning("Custom order %s override %s -> %s by %s", order.order_number, current, new_status, actor.pk)
        else:
            logger.info("Custom order %s %s -> %s by %s", order.order_number, current, new_status, actor.pk)
        return order

    @staticmethod
    def set_estimated_price(order: CustomOrder, amount, actor) -> CustomOrder:
        require_staff(actor)
        amount = to_money(amount)
        if amount <= 0:
            raise InvalidAmount("Estimated price must be greater than zero", amount=str(amount))
        if order.status not in QUOTABLE:
            raise InvalidTransition(f"Estimate cannot change once the order is {order.status}")
        updated = CustomOrder.objects.filter(pk=order.pk, status__in=QUOTABLE).update(
            estimated_price=amount, updated_at=timezone.now()
        )
        if not updated:
            raise InvalidTransition("The quote was accepted meanwhile; reload the order")
        order.estimated_price = amount
        return order

    @staticmethod
    def set_final_price(order: CustomOrder, amount, actor) -> CustomOrder:
        require_staff(actor)
        amount = to_money(amount)
        if amount <= 0:
            raise InvalidAmount("Final price must be greater than zero", amount=str(amount))
        if order.status not in PRICED:
            raise InvalidTransition("Final price is set once the quote is accepted")
        updated = CustomOrder.objects.filter(pk=order.pk, final_price__isnull=True).update(
            final_price=amount, updated_at=timezone.now()
        )
        if not updated:
            raise ImmutableFieldViolation("Final price is already set", fields=["final_price"])
        order.final_price = amount
        return order

    @staticmethod
    def assign(order: CustomOrder, staff, actor, estimated_completion_date=None) -> CustomOrder:
        require_staff(actor)
        if staff is None or not getattr(staff, "is_store_staff", False):
            raise InvalidInput("Custom orders can only be assigned to staff")
        if order.is_terminal:
            raise InvalidTransition(f"{order.order_number} is already {order.status}")
        order.assigned_to = staff
        fields = ["assigned_to", "updated_at"]
        if estimated_completion_date is not None:
            order.estimated_completion_date = estimated_completion_date
            fields.append("estimated_completion_date")
        order.save(update_fields=fields)
        logger.info("Custom order %s assigned to %s", order.order_number, staff.pk)
        return order

    @classmethod
    def post_message(cls, order: CustomOrder, user, text: str, is_internal: bool = False) -> CustomOrderMessage:
        cls._check_visible(order, user)
        if is_internal and not user.is_store_staff:
            raise PermissionDenied("Only staff can post internal notes")
        text = (text or "").strip()
        if not text:
            raise InvalidInput("Message cannot be empty")
        with transaction.atomic():
            message = CustomOrderMessage.objects.create(
                custom_order=order, user=user, message=text, is_internal=is_internal
            )
            if user.is_store_staff:
                if not is_internal:
                    _notify_after_commit(order.user, NotificationTemplates.custom_order_message, order, message)
            elif order.assigned_to_id:
                _notify_after_commit(order.assigned_to, NotificationTemplates.custom_order_message, order, message)
            else:
                transaction.on_commit(
                    lambda: NotificationService.notify_staff(NotificationTemplates.custom_order_message, order, message)
                )
        return message

    @classmethod
    def messages_for(cls, order: CustomOrder, user):
        cls._check_visible(order, user)
        qs = CustomOrderMessage.objects.filter(custom_order=order).select_related("user").order_by("created_at")
        if not user.is_store_staff:
            qs = qs.filter(is_internal=False)
        return qs

    @classmethod
    def add_image(cls, order: CustomOrder, user, image_url: str, caption: str = "") -> CustomOrderImage:
        cls._check_visible(order, user)
        if order.is_terminal:
            raise InvalidTransition(f"{order.order_number} is already {order.status}")
        if not (image_url or "").strip():
            raise InvalidInput("Image URL is required")
        return CustomOrderImage.objects.create(
            custom_order=order, image_url=image_url.strip(), caption=caption, uploaded_by=user
        )
