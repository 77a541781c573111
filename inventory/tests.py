from unittest import mock

from django.test import TestCase
from rest_framework import status
from rest_framework.test import APITestCase

from account.models import User
from catalog.models import Category, Product
from core.exceptions import InsufficientStock, InvalidQuantity, InvalidTransition
from inventory.models import Inventory, StockMovement, StockReservation
from inventory.services import StockLedger


class StockLedgerTests(TestCase):
    def setUp(self):
        self.staff = User.objects.create_user(email="staff@example.com", password="Pass123!", role="STAFF")
        category = Category.objects.create(name="Sarees")
        self.product = Product.objects.create(
            name="Chanderi Saree",
            category=category,
            price="1500.00",
            low_stock_threshold=2,
        )
        StockLedger.restock(self.product, 10, actor=self.staff, notes="Opening stock")

    def _inventory(self):
        return Inventory.objects.get(product=self.product)

    def _assert_bounds(self):
        inventory = self._inventory()
        self.assertGreaterEqual(inventory.reserved_quantity, 0)
        self.assertLessEqual(inventory.reserved_quantity, inventory.quantity)

    def test_product_creation_creates_empty_inventory(self):
        product = Product.objects.create(name="Block Print Dupatta", price="600.00")
        inventory = Inventory.objects.get(product=product)
        self.assertEqual(inventory.quantity, 0)
        self.assertEqual(inventory.reserved_quantity, 0)

    def test_reserve_holds_stock_without_touching_on_hand(self):
        reservation = StockLedger.reserve(self.product, 4)

        inventory = self._inventory()
        self.assertEqual(inventory.quantity, 10)
        self.assertEqual(inventory.reserved_quantity, 4)
        self.assertEqual(StockLedger.available(self.product), 6)
        self.assertEqual(reservation.status, StockReservation.Status.HELD)

    def test_reserve_beyond_available_raises(self):
        StockLedger.reserve(self.product, 8)
        with self.assertRaises(InsufficientStock) as ctx:
            StockLedger.reserve(self.product, 3)
        self.assertEqual(ctx.exception.details["available"], 2)
        self.assertEqual(self._inventory().reserved_quantity, 8)

    def test_invalid_quantities_are_rejected(self):
        for bad in (0, -1, 1.5, "2", True):
            with self.assertRaises(InvalidQuantity):
                StockLedger.reserve(self.product, bad)
        with self.assertRaises(InvalidQuantity):
            StockLedger.check_available(self.product, 0)

    def test_check_available_is_a_pure_read(self):
        self.assertTrue(StockLedger.check_available(self.product, 10))
        self.assertFalse(StockLedger.check_available(self.product, 11))
        self.assertEqual(self._inventory().reserved_quantity, 0)

    def test_commit_moves_reserved_stock_out_and_logs_sale(self):
        reservation = StockLedger.reserve(self.product, 3)
        StockLedger.commit(reservation, actor=self.staff)

        inventory = self._inventory()
        self.assertEqual(inventory.quantity, 7)
        self.assertEqual(inventory.reserved_quantity, 0)
        sale = StockMovement.objects.get(product=self.product, movement_type=StockMovement.MovementType.SALE)
        self.assertEqual(sale.quantity_change, -3)

    def test_commit_twice_is_a_no_op(self):
        reservation = StockLedger.reserve(self.product, 3)
        StockLedger.commit(reservation)
        StockLedger.commit(reservation)

        self.assertEqual(self._inventory().quantity, 7)
        self.assertEqual(
            StockMovement.objects.filter(product=self.product, movement_type=StockMovement.MovementType.SALE).count(), 1
        )

    def test_commit_after_release_is_rejected(self):
        reservation = StockLedger.reserve(self.product, 3)
        StockLedger.release(reservation)
        with self.assertRaises(InvalidTransition):
            StockLedger.commit(reservation)

    def test_release_is_idempotent(self):
        reservation = StockLedger.reserve(self.product, 5)

        self.assertTrue(StockLedger.release(reservation))
        self.assertFalse(StockLedger.release(reservation))
        self.assertFalse(StockLedger.release(StockReservation.objects.get(pk=reservation.pk)))

        inventory = self._inventory()
        self.assertEqual(inventory.reserved_quantity, 0)
        self.assertEqual(inventory.quantity, 10)

    def test_return_to_stock_reverses_a_sale_once(self):
        reservation = StockLedger.reserve(self.product, 2)
        StockLedger.commit(reservation)

        self.assertTrue(StockLedger.return_to_stock(reservation, actor=self.staff, notes="Cancelled"))
        self.assertFalse(StockLedger.return_to_stock(reservation, actor=self.staff))

        self.assertEqual(self._inventory().quantity, 10)
        returned = StockMovement.objects.get(
            product=self.product, movement_type=StockMovement.MovementType.RESTOCK, reference_type="checkout"
        )
        self.assertEqual(returned.quantity_change, 2)

    def test_adjust_cannot_remove_reserved_stock(self):
        StockLedger.reserve(self.product, 7)
        with self.assertRaises(InsufficientStock):
            StockLedger.adjust(self.product, -4, actor=self.staff, notes="Damaged")
        inventory = StockLedger.adjust(self.product, -3, actor=self.staff, notes="Damaged")
        self.assertEqual(inventory.quantity, 7)
        self.assertEqual(inventory.reserved_quantity, 7)

    def test_reserved_stays_within_bounds_over_a_mixed_sequence(self):
        first = StockLedger.reserve(self.product, 4)
        self._assert_bounds()
        second = StockLedger.reserve(self.product, 6)
        self._assert_bounds()
        StockLedger.commit(first)
        self._assert_bounds()
        StockLedger.release(second)
        self._assert_bounds()
        StockLedger.restock(self.product, 5)
        self._assert_bounds()
        third = StockLedger.reserve(self.product, 11)
        StockLedger.commit(third)
        self._assert_bounds()
        self.assertEqual(StockLedger.available(self.product), 0)

    def test_movement_sum_matches_on_hand_quantity(self):
        a = StockLedger.reserve(self.product, 3)
        StockLedger.commit(a)
        StockLedger.restock(self.product, 4)
        b = StockLedger.reserve(self.product, 2)
        StockLedger.commit(b)
        StockLedger.return_to_stock(b)
        StockLedger.adjust(self.product, -1)

        self.assertTrue(StockLedger.reconcile(self.product))
        self.assertEqual(self._inventory().quantity, 10 - 3 + 4 - 2 + 2 - 1)

    def test_failed_movement_write_rolls_back_quantity(self):
        with mock.patch("inventory.services.StockMovement.objects.create", side_effect=RuntimeError("disk full")):
            with self.assertRaises(RuntimeError):
                StockLedger.restock(self.product, 5)
        self.assertEqual(self._inventory().quantity, 10)
        self.assertTrue(StockLedger.reconcile(self.product))

    def test_low_stock_lists_products_at_or_below_threshold(self):
        self.assertEqual(list(StockLedger.low_stock()), [])
        StockLedger.reserve(self.product, 8)
        low = list(StockLedger.low_stock())
        self.assertEqual([row.product_id for row in low], [self.product.id])
        self.assertEqual(low[0].available_qty, 2)


class InventoryApiTests(APITestCase):
    def setUp(self):
        self.staff = User.objects.create_user(email="staff_api@example.com", password="Pass123!", role="STAFF")
        self.customer = User.objects.create_user(email="buyer_api@example.com", password="Pass123!")
        self.product = Product.objects.create(name="Kalamkari Stole", price="900.00")

    def test_staff_can_restock(self):
        self.client.force_authenticate(user=self.staff)
        response = self.client.post(
            f"/inventory/{self.product.id}/restock/", {"quantity": 12, "notes": "New batch"}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["quantity"], 12)

        history = self.client.get(f"/inventory/{self.product.id}/movements/")
        self.assertEqual(history.status_code, status.HTTP_200_OK)

    def test_customer_cannot_restock(self):
        self.client.force_authenticate(user=self.customer)
        response = self.client.post(f"/inventory/{self.product.id}/restock/", {"quantity": 5}, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(Inventory.objects.get(product=self.product).quantity, 0)

    def test_adjust_below_reserved_returns_conflict(self):
        StockLedger.restock(self.product, 3)
        StockLedger.reserve(self.product, 3)
        self.client.force_authenticate(user=self.staff)
        response = self.client.post(f"/inventory/{self.product.id}/adjust/", {"delta": -1}, format="json")
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT, response.data)
