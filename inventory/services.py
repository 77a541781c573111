import logging

from django.db import transaction
from django.db.models import F, Sum
from django.utils import timezone

from catalog.models import Product
from core.exceptions import InsufficientStock, InvalidQuantity, InvalidTransition, NotFound
from .models import Inventory, StockMovement, StockReservation

logger = logging.getLogger(__name__)


def validate_quantity(qty) -> int:
    if isinstance(qty, bool) or not isinstance(qty, int) or qty < 1:
        raise InvalidQuantity("Quantity must be a positive whole number", quantity=qty)
    return qty


class StockLedger:
    """Authoritative stock counts for every product.

    ``available = quantity - reserved_quantity``. Reservations hold stock for
    an in-flight checkout and end either committed (sold) or released.
    Every change to ``quantity`` writes a StockMovement in the same
    transaction.
    """

    @staticmethod
    def _counts(product):
        row = Inventory.objects.filter(product=product).values("quantity", "reserved_quantity").first()
        if row is None:
            raise NotFound(f"No inventory record for {product}")
        return row["quantity"], row["reserved_quantity"]

    @staticmethod
    def available(product) -> int:
        quantity, reserved = StockLedger._counts(product)
        return quantity - reserved

    @staticmethod
    def check_available(product, qty: int) -> bool:
        validate_quantity(qty)
        return qty <= StockLedger.available(product)

    @staticmethod
    def reserve(product: Product, qty: int, reference: str = "", order=None) -> StockReservation:
        validate_quantity(qty)
        with transaction.atomic():
            # Single conditional UPDATE: two racing reservations cannot both pass the guard
            updated = Inventory.objects.filter(
                product=product,
                reserved_quantity__lte=F("quantity") - qty,
            ).update(reserved_quantity=F("reserved_quantity") + qty, updated_at=timezone.now())
            if not updated:
                available = StockLedger.available(product)
                raise InsufficientStock(
                    f"Only {available} of {product.name} available",
                    product_id=str(product.pk),
                    requested=qty,
                    available=available,
                )
            reservation = StockReservation.objects.create(
                product=product,
                quantity=qty,
                reference=reference,
                order=order,
            )
        logger.info("Reserved %s x%d reservation=%s", product.pk, qty, reservation.pk)
        return reservation

    @staticmethod
    def _claim(reservation: StockReservation, from_status: str, to_status: str) -> bool:
        claimed = StockReservation.objects.filter(pk=reservation.pk, status=from_status).update(
            status=to_status, updated_at=timezone.now()
        )
        return bool(claimed)

    @staticmethod
    def _current_status(reservation: StockReservation) -> str:
        return StockReservation.objects.values_list("status", flat=True).get(pk=reservation.pk)

    @staticmethod
    def commit(reservation: StockReservation, actor=None) -> StockReservation:
        qty = reservation.quantity
        with transaction.atomic():
            if not StockLedger._claim(reservation, StockReservation.Status.HELD, StockReservation.Status.COMMITTED):
                current = StockLedger._current_status(reservation)
                if current == StockReservation.Status.COMMITTED:
                    reservation.status = current
                    return reservation
                raise InvalidTransition(f"Cannot commit a {current} reservation")
            updated = Inventory.objects.filter(
                product_id=reservation.product_id,
                reserved_quantity__gte=qty,
            ).update(
                quantity=F("quantity") - qty,
                reserved_quantity=F("reserved_quantity") - qty,
                updated_at=timezone.now(),
            )
            if not updated:
                raise InsufficientStock("Reserved stock is missing", reservation_id=str(reservation.pk))
            StockMovement.objects.create(
                product_id=reservation.product_id,
                quantity_change=-qty,
                movement_type=StockMovement.MovementType.SALE,
                reference_type="order" if reservation.order_id else "checkout",
                reference_id=str(reservation.order_id or reservation.reference),
                created_by=actor,
            )
        reservation.status = StockReservation.Status.COMMITTED
        logger.info("Committed reservation=%s (%s x%d)", reservation.pk, reservation.product_id, qty)
        return reservation

    @staticmethod
    def release(reservation: StockReservation) -> bool:
        """Drop a held reservation. Returns False when it was no longer held."""
        qty = reservation.quantity
        with transaction.atomic():
            if not StockLedger._claim(reservation, StockReservation.Status.HELD, StockReservation.Status.RELEASED):
                reservation.status = StockLedger._current_status(reservation)
                return False
            Inventory.objects.filter(
                product_id=reservation.product_id,
                reserved_quantity__gte=qty,
            ).update(reserved_quantity=F("reserved_quantity") - qty, updated_at=timezone.now())
        reservation.status = StockReservation.Status.RELEASED
        logger.info("Released reservation=%s (%s x%d)", reservation.pk, reservation.product_id, qty)
        return True

    @staticmethod
    def return_to_stock(reservation: StockReservation, actor=None, notes: str = "") -> bool:
        """Put committed (sold) goods back on the shelf, e.g. on order cancellation.

        Posted as a restock movement that references the order, or the checkout
        when no order was written.
        """
        qty = reservation.quantity
        with transaction.atomic():
            if not StockLedger._claim(reservation, StockReservation.Status.COMMITTED, StockReservation.Status.RETURNED):
                current = StockLedger._current_status(reservation)
                reservation.status = current
                if current == StockReservation.Status.RETURNED:
                    return False
                raise InvalidTransition(f"Cannot return a {current} reservation to stock")
            Inventory.objects.filter(product_id=reservation.product_id).update(
                quantity=F("quantity") + qty, updated_at=timezone.now()
            )
            StockMovement.objects.create(
                product_id=reservation.product_id,
                quantity_change=qty,
                movement_type=StockMovement.MovementType.RESTOCK,
                reference_type="order" if reservation.order_id else "checkout",
                reference_id=str(reservation.order_id or reservation.reference),
                notes=notes,
                created_by=actor,
            )
        reservation.status = StockReservation.Status.RETURNED
        logger.info("Returned reservation=%s to stock (%s x%d)", reservation.pk, reservation.product_id, qty)
        return True

    @staticmethod
    def restock(product: Product, qty: int, actor=None, notes: str = "",
                reference_type: str = "manual", reference_id: str = "") -> Inventory:
        validate_quantity(qty)
        now = timezone.now()
        with transaction.atomic():
            updated = Inventory.objects.filter(product=product).update(
                quantity=F("quantity") + qty, last_restocked_at=now, updated_at=now
            )
            if not updated:
                raise NotFound(f"No inventory record for {product}")
            StockMovement.objects.create(
                product=product,
                quantity_change=qty,
                movement_type=StockMovement.MovementType.RESTOCK,
                reference_type=reference_type,
                reference_id=reference_id,
                notes=notes,
                created_by=actor,
            )
        logger.info("Restocked %s +%d", product.pk, qty)
        return Inventory.objects.get(product=product)

    @staticmethod
    def adjust(product: Product, delta: int, actor=None, notes: str = "") -> Inventory:
        # Positive delta = found stock, negative = shrinkage / damaged goods
        if isinstance(delta, bool) or not isinstance(delta, int) or delta == 0:
            raise InvalidQuantity("Adjustment must be a non-zero whole number", quantity=delta)
        with transaction.atomic():
            qs = Inventory.objects.filter(product=product)
            if delta < 0:
                qs = qs.filter(quantity__gte=F("reserved_quantity") - delta)
            updated = qs.update(quantity=F("quantity") + delta, updated_at=timezone.now())
            if not updated:
                available = StockLedger.available(product)
                raise InsufficientStock(
                    f"Cannot remove {-delta}; only {available} unreserved",
                    product_id=str(product.pk),
                    requested=-delta,
                    available=available,
                )
            StockMovement.objects.create(
                product=product,
                quantity_change=delta,
                movement_type=StockMovement.MovementType.ADJUSTMENT,
                reference_type="manual",
                notes=notes,
                created_by=actor,
            )
        logger.info("Adjusted %s by %+d", product.pk, delta)
        return Inventory.objects.get(product=product)

    @staticmethod
    def low_stock():
        return (
            Inventory.objects.select_related("product")
            .filter(product__status=Product.Status.ACTIVE)
            .annotate(available_qty=F("quantity") - F("reserved_quantity"))
            .filter(available_qty__lte=F("product__low_stock_threshold"))
            .order_by("available_qty")
        )

    @staticmethod
    def reconcile(product: Product) -> bool:
        quantity, _ = StockLedger._counts(product)
        total = StockMovement.objects.filter(product=product).aggregate(total=Sum("quantity_change"))["total"] or 0
        return total == quantity
