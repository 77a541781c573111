from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from unittest import mock
import threading

from django.db import OperationalError, close_old_connections
from django.test import TestCase, TransactionTestCase, override_settings
from rest_framework import status
from rest_framework.test import APITestCase

from account.models import Customer, User
from account.services import CustomerService
from catalog.models import Product
from core.exceptions import (
    AuthenticationRequired,
    CompensationFailed,
    EmptyCart,
    ImmutableFieldViolation,
    InsufficientBalance,
    InsufficientStock,
    InvalidAmount,
    InvalidQuantity,
    InvalidTransition,
    NotFound,
    OutOfStock,
    PermissionDenied,
    StockConflict,
)
from inventory.models import StockMovement, StockReservation
from inventory.services import StockLedger
from loyalty.models import LoyaltyTransaction
from loyalty.services import WalletLedger
from payment.models import Payment
from payment.services import PaymentService

from .models import CartItem, Order, OrderItem, OrderStatusHistory
from .services import CartService, CheckoutService, OrderStateMachine, compute_totals

ADDRESS = "12 MG Road, Bengaluru, Karnataka - 560001"


def make_product(name, price, stock):
    product = Product.objects.create(name=name, price=Decimal(price))
    if stock:
        StockLedger.restock(product, stock)
    return product


class CartServiceTests(TestCase):
    def setUp(self):
        self.buyer = User.objects.create_user(email="cart@example.com", password="Pass123!")
        self.other = User.objects.create_user(email="other_cart@example.com", password="Pass123!")
        self.saree = make_product("Chanderi Saree", "1500.00", 3)

    def test_add_merges_into_existing_line(self):
        CartService.add(self.buyer, self.saree, 1)
        item = CartService.add(self.buyer, self.saree, 2)

        self.assertEqual(item.quantity, 3)
        self.assertEqual(CartItem.objects.filter(user=self.buyer).count(), 1)
        self.assertEqual(CartService.total_items(self.buyer), 3)
        self.assertEqual(CartService.total_price(self.buyer), Decimal("4500.00"))

    def test_add_beyond_available_raises_out_of_stock(self):
        CartService.add(self.buyer, self.saree, 2)
        with self.assertRaises(OutOfStock):
            CartService.add(self.buyer, self.saree, 2)
        self.assertEqual(CartItem.objects.get(user=self.buyer).quantity, 2)

    def test_lines_of_the_same_product_share_availability(self):
        CartService.add(self.buyer, self.saree, 2, size="M")
        with self.assertRaises(OutOfStock):
            CartService.add(self.buyer, self.saree, 2, size="L")

    def test_cart_never_reserves_stock(self):
        CartService.add(self.buyer, self.saree, 3)
        self.assertEqual(StockLedger.available(self.saree), 3)

    def test_inactive_products_cannot_be_added(self):
        self.saree.status = Product.Status.INACTIVE
        self.saree.save()
        with self.assertRaises(OutOfStock):
            CartService.add(self.buyer, self.saree, 1)

    def test_set_quantity_validates_input(self):
        item = CartService.add(self.buyer, self.saree, 1)
        for bad in (0, -2, 1.5):
            with self.assertRaises(InvalidQuantity):
                CartService.set_quantity(self.buyer, item, bad)
        with self.assertRaises(OutOfStock):
            CartService.set_quantity(self.buyer, item, 4)
        self.assertEqual(CartService.set_quantity(self.buyer, item, 3).quantity, 3)

    def test_lines_of_other_users_are_not_found(self):
        item = CartService.add(self.buyer, self.saree, 1)
        with self.assertRaises(NotFound):
            CartService.set_quantity(self.other, item, 2)
        with self.assertRaises(NotFound):
            CartService.remove(self.other, item)
        self.assertTrue(CartItem.objects.filter(pk=item.pk).exists())

    def test_remove_and_clear(self):
        item = CartService.add(self.buyer, self.saree, 1)
        CartService.add(self.other, self.saree, 1)
        CartService.remove(self.buyer, item)
        self.assertEqual(CartService.total_items(self.buyer), 0)

        CartService.add(self.buyer, self.saree, 1)
        CartService.clear(self.buyer)
        self.assertFalse(CartItem.objects.filter(user=self.buyer).exists())
        self.assertTrue(CartItem.objects.filter(user=self.other).exists())

    def test_anonymous_user_is_rejected(self):
        with self.assertRaises(AuthenticationRequired):
            CartService.add(None, self.saree, 1)
        with self.assertRaises(AuthenticationRequired):
            CartService.items(None)


@override_settings(
    STORE_TAX_RATE=Decimal("0.05"),
    STORE_FREE_SHIPPING_THRESHOLD=Decimal("2000"),
    STORE_SHIPPING_FEE=Decimal("150"),
    STORE_COD_SURCHARGE=Decimal("0"),
)
class ComputeTotalsTests(TestCase):
    def test_free_shipping_from_threshold(self):
        totals = compute_totals([(Decimal("500.00"), 2), (Decimal("1500.00"), 1)])

        self.assertEqual(totals.subtotal, Decimal("2500.00"))
        self.assertEqual(totals.tax, Decimal("125.00"))
        self.assertEqual(totals.shipping, Decimal("0.00"))
        self.assertEqual(totals.total, Decimal("2625.00"))

    def test_shipping_fee_below_threshold(self):
        totals = compute_totals([(Decimal("500.00"), 1)], payment_method="upi")
        self.assertEqual(totals.shipping, Decimal("150.00"))
        self.assertEqual(totals.total, Decimal("675.00"))

    @override_settings(STORE_COD_SURCHARGE=Decimal("40"))
    def test_cod_surcharge_applies_to_cash_only(self):
        cash = compute_totals([(Decimal("2500.00"), 1)], payment_method="cash")
        upi = compute_totals([(Decimal("2500.00"), 1)], payment_method="upi")
        self.assertEqual(cash.shipping, Decimal("40.00"))
        self.assertEqual(upi.shipping, Decimal("0.00"))

    def test_tax_is_on_discounted_amount_rounded_half_up(self):
        totals = compute_totals([(Decimal("333.33"), 1)], discount="0.03", payment_method="upi")
        self.assertEqual(totals.taxable, Decimal("333.30"))
        self.assertEqual(totals.tax, Decimal("16.67"))  # 16.665 rounds up

    def test_discount_outside_range_is_rejected(self):
        with self.assertRaises(InvalidAmount):
            compute_totals([(Decimal("100.00"), 1)], discount="-1")
        with self.assertRaises(InvalidAmount):
            compute_totals([(Decimal("100.00"), 1)], discount="100.01")


@override_settings(STORE_TAX_RATE=Decimal("0.05"), STORE_COD_SURCHARGE=Decimal("0"))
class CheckoutServiceTests(TestCase):
    def setUp(self):
        self.buyer = User.objects.create_user(email="buyer@example.com", password="Pass123!", full_name="Asha")
        self.rival = User.objects.create_user(email="rival@example.com", password="Pass123!")
        self.staff = User.objects.create_user(email="staff@example.com", password="Pass123!", role="STAFF")
        self.a = make_product("Block Print Kurta", "500.00", 5)
        self.b = make_product("Chanderi Saree", "1500.00", 1)

    def _fill_cart(self):
        CartService.add(self.buyer, self.a, 2)
        CartService.add(self.buyer, self.b, 1)

    def test_checkout_creates_order_and_commits_stock(self):
        self._fill_cart()

        order = CheckoutService.checkout(self.buyer, ADDRESS, "cash")

        self.assertEqual(order.subtotal, Decimal("2500.00"))
        self.assertEqual(order.tax_amount, Decimal("125.00"))
        self.assertEqual(order.shipping_amount, Decimal("0.00"))
        self.assertEqual(order.total_amount, Decimal("2625.00"))
        self.assertEqual(order.status, Order.Status.PENDING)
        self.assertEqual(order.payment_status, Order.PaymentStatus.PENDING)
        self.assertRegex(order.order_number, r"^ORD-\d{8}-[0-9A-F]{6}$")
        self.assertEqual(StockLedger.available(self.b), 0)
        self.assertEqual(StockLedger.available(self.a), 3)
        self.assertFalse(CartItem.objects.filter(user=self.buyer).exists())
        self.assertEqual(order.items.count(), 2)
        self.assertEqual(
            set(StockReservation.objects.filter(order=order).values_list("status", flat=True)),
            {StockReservation.Status.COMMITTED},
        )
        self.assertEqual(OrderStatusHistory.objects.filter(order=order).count(), 1)

        customer = Customer.objects.get(user=self.buyer)
        self.assertEqual(customer.total_orders, 1)
        self.assertEqual(customer.total_spent, Decimal("2625.00"))

    def test_stock_conflict_leaves_cart_untouched(self):
        self._fill_cart()
        CartService.add(self.rival, self.b, 1)
        CheckoutService.checkout(self.rival, ADDRESS, "cash")

        with self.assertRaises(StockConflict) as ctx:
            CheckoutService.checkout(self.buyer, ADDRESS, "cash")

        conflicts = ctx.exception.conflicts
        self.assertEqual([c["product_name"] for c in conflicts], ["Chanderi Saree"])
        self.assertEqual(conflicts[0]["available"], 0)
        self.assertEqual(CartItem.objects.filter(user=self.buyer).count(), 2)
        self.assertFalse(Order.objects.filter(user=self.buyer).exists())
        self.assertEqual(StockLedger.available(self.a), 5)

    def test_no_oversell_between_two_checkouts(self):
        shawl = make_product("Pashmina Shawl", "4000.00", 3)
        CartService.add(self.buyer, shawl, 2)
        CartService.add(self.rival, shawl, 2)

        CheckoutService.checkout(self.buyer, ADDRESS, "cash")
        with self.assertRaises(InsufficientStock):
            CheckoutService.checkout(self.rival, ADDRESS, "cash")

        self.assertEqual(StockLedger.available(shawl), 1)
        self.assertEqual(Order.objects.count(), 1)

    def test_empty_cart_is_rejected(self):
        with self.assertRaises(EmptyCart):
            CheckoutService.checkout(self.buyer, ADDRESS, "cash")

    def test_failure_after_reservation_restores_availability(self):
        self._fill_cart()

        with mock.patch.object(CheckoutService, "_create_items", side_effect=RuntimeError("db write failed")):
            with self.assertRaises(RuntimeError):
                CheckoutService.checkout(self.buyer, ADDRESS, "cash")

        self.assertEqual(StockLedger.available(self.a), 5)
        self.assertEqual(StockLedger.available(self.b), 1)
        self.assertFalse(Order.objects.exists())
        self.assertEqual(CartItem.objects.filter(user=self.buyer).count(), 2)
        self.assertEqual(
            set(StockReservation.objects.values_list("status", flat=True)),
            {StockReservation.Status.RELEASED},
        )
        self.assertTrue(StockLedger.reconcile(self.a))

    def test_failed_compensation_is_reported(self):
        self._fill_cart()

        with mock.patch.object(CheckoutService, "_create_items", side_effect=RuntimeError("db write failed")), \
                mock.patch.object(StockLedger, "release", side_effect=RuntimeError("db gone")):
            with self.assertRaises(CompensationFailed) as ctx:
                CheckoutService.checkout(self.buyer, ADDRESS, "cash")

        self.assertIsInstance(ctx.exception.original, RuntimeError)

    def test_database_error_while_reserving_releases_earlier_holds(self):
        self._fill_cart()
        real_reserve = StockLedger.reserve
        calls = []

        def flaky_reserve(product, qty, reference=""):
            calls.append(product.pk)
            if len(calls) == 2:
                raise OperationalError("database table is locked")
            return real_reserve(product, qty, reference=reference)

        with mock.patch.object(StockLedger, "reserve", side_effect=flaky_reserve):
            with self.assertRaises(OperationalError):
                CheckoutService.checkout(self.buyer, ADDRESS, "cash")

        self.assertEqual(len(calls), 2)
        self.assertEqual(StockLedger.available(self.a), 5)
        self.assertEqual(StockLedger.available(self.b), 1)
        self.assertFalse(Order.objects.exists())
        self.assertEqual(CartItem.objects.filter(user=self.buyer).count(), 2)
        self.assertEqual(
            set(StockReservation.objects.values_list("status", flat=True)),
            {StockReservation.Status.RELEASED},
        )

    def test_failed_release_after_reserve_error_is_reported(self):
        self._fill_cart()
        real_reserve = StockLedger.reserve
        calls = []

        def flaky_reserve(product, qty, reference=""):
            calls.append(product.pk)
            if len(calls) == 2:
                raise OperationalError("connection dropped")
            return real_reserve(product, qty, reference=reference)

        with mock.patch.object(StockLedger, "reserve", side_effect=flaky_reserve), \
                mock.patch.object(StockLedger, "release", side_effect=RuntimeError("db gone")):
            with self.assertRaises(CompensationFailed) as ctx:
                CheckoutService.checkout(self.buyer, ADDRESS, "cash")

        self.assertIsInstance(ctx.exception.original, OperationalError)

    def test_prepaid_checkout_is_confirmed_and_paid(self):
        self._fill_cart()

        order = CheckoutService.checkout(self.buyer, ADDRESS, "upi")

        self.assertEqual(order.status, Order.Status.CONFIRMED)
        self.assertEqual(order.payment_status, Order.PaymentStatus.PAID)
        payment = Payment.objects.get(order=order)
        self.assertEqual(payment.amount, order.total_amount)
        self.assertEqual(payment.kind, Payment.Kind.PAYMENT)

    def test_wallet_checkout_debits_wallet(self):
        customer = CustomerService.for_user(self.buyer)
        WalletLedger.credit(customer, "3000.00", reference_type="topup")
        CartService.add(self.buyer, self.a, 2)

        order = CheckoutService.checkout(self.buyer, ADDRESS, "wallet")

        # 1000 + 5% tax + 150 shipping
        self.assertEqual(order.total_amount, Decimal("1200.00"))
        customer.refresh_from_db()
        self.assertEqual(customer.wallet_balance, Decimal("1800.00"))

    def test_wallet_shortfall_rolls_back_everything(self):
        CartService.add(self.buyer, self.a, 2)

        with self.assertRaises(InsufficientBalance):
            CheckoutService.checkout(self.buyer, ADDRESS, "wallet")

        self.assertEqual(StockLedger.available(self.a), 5)
        self.assertFalse(Order.objects.exists())
        self.assertEqual(CartItem.objects.filter(user=self.buyer).count(), 1)

    def test_order_items_keep_price_at_checkout(self):
        CartService.add(self.buyer, self.a, 1)
        order = CheckoutService.checkout(self.buyer, ADDRESS, "cash")

        self.a.price = Decimal("650.00")
        self.a.save()

        item = OrderItem.objects.get(order=order)
        self.assertEqual(item.unit_price, Decimal("500.00"))
        self.assertEqual(item.product_name, "Block Print Kurta")

    def test_order_header_and_items_are_immutable(self):
        CartService.add(self.buyer, self.a, 1)
        order = CheckoutService.checkout(self.buyer, ADDRESS, "cash")

        order.total_amount = Decimal("1.00")
        with self.assertRaises(ImmutableFieldViolation):
            order.save()

        item = order.items.get()
        item.quantity = 10
        with self.assertRaises(ImmutableFieldViolation):
            item.save()

        fresh = Order.objects.get(pk=order.pk)
        fresh.notes = "Gift wrap please"
        fresh.save()
        self.assertEqual(Order.objects.get(pk=order.pk).notes, "Gift wrap please")

    def test_pos_sale_is_paid_without_shipping(self):
        order = CheckoutService.pos_sale(
            self.staff,
            [{"product": self.a, "quantity": 2}],
            discount_percent=10,
            payment_method="cash",
        )

        self.assertEqual(order.source, Order.Source.POS)
        self.assertEqual(order.status, Order.Status.CONFIRMED)
        self.assertEqual(order.payment_status, Order.PaymentStatus.PAID)
        self.assertEqual(order.discount_amount, Decimal("100.00"))
        self.assertEqual(order.shipping_amount, Decimal("0.00"))
        self.assertEqual(order.total_amount, Decimal("945.00"))
        self.assertEqual(StockLedger.available(self.a), 3)

    def test_pos_sale_is_staff_only(self):
        with self.assertRaises(PermissionDenied):
            CheckoutService.pos_sale(self.buyer, [{"product": self.a, "quantity": 1}])


@override_settings(STORE_TAX_RATE=Decimal("0.05"), STORE_COD_SURCHARGE=Decimal("0"), LOYALTY_CURRENCY_PER_POINT=Decimal("10"))
class OrderStateMachineTests(TestCase):
    def setUp(self):
        self.buyer = User.objects.create_user(email="sm_buyer@example.com", password="Pass123!")
        self.staff = User.objects.create_user(email="sm_staff@example.com", password="Pass123!", role="STAFF")
        self.product = make_product("Kantha Quilt", "2500.00", 10)

    def _order(self, method="cash"):
        CartService.add(self.buyer, self.product, 1)
        return CheckoutService.checkout(self.buyer, ADDRESS, method)

    def _walk(self, order, *statuses):
        for new_status in statuses:
            OrderStateMachine.transition(order, new_status, self.staff)
        return order

    def test_skipping_states_is_rejected(self):
        order = self._order()
        with self.assertRaises(InvalidTransition):
            OrderStateMachine.transition(order, Order.Status.DELIVERED, self.staff)
        self.assertEqual(Order.objects.get(pk=order.pk).status, Order.Status.PENDING)
        self.assertEqual(OrderStatusHistory.objects.filter(order=order).count(), 1)

    def test_unknown_status_is_rejected(self):
        order = self._order()
        with self.assertRaises(InvalidTransition):
            OrderStateMachine.transition(order, "shipped", self.staff)

    def test_customers_cannot_transition(self):
        order = self._order()
        with self.assertRaises(PermissionDenied):
            OrderStateMachine.transition(order, Order.Status.CONFIRMED, self.buyer)

    def test_cancel_is_reachable_from_every_non_terminal_state(self):
        paths = [
            [],
            [Order.Status.CONFIRMED],
            [Order.Status.CONFIRMED, Order.Status.PROCESSING],
            [Order.Status.CONFIRMED, Order.Status.PROCESSING, Order.Status.READY],
        ]
        for path in paths:
            order = self._walk(self._order(), *path)
            OrderStateMachine.transition(order, Order.Status.CANCELLED, self.staff)
            self.assertEqual(Order.objects.get(pk=order.pk).status, Order.Status.CANCELLED)

    def test_terminal_states_are_final(self):
        order = self._walk(self._order(), Order.Status.CANCELLED)
        with self.assertRaises(InvalidTransition):
            OrderStateMachine.transition(order, Order.Status.CONFIRMED, self.staff)

    def test_stale_order_cannot_transition(self):
        order = self._order()
        stale = Order.objects.get(pk=order.pk)
        OrderStateMachine.transition(order, Order.Status.CONFIRMED, self.staff)
        with self.assertRaises(InvalidTransition):
            OrderStateMachine.transition(stale, Order.Status.CANCELLED, self.staff)
        self.assertEqual(Order.objects.get(pk=order.pk).status, Order.Status.CONFIRMED)

    def test_cancel_refunds_payment_recorded_after_loading(self):
        order = self._order()
        stale = Order.objects.get(pk=order.pk)
        PaymentService.record_payment(order, order.total_amount, "upi", actor=self.staff)
        self.assertEqual(stale.payment_status, Order.PaymentStatus.PENDING)

        OrderStateMachine.transition(stale, Order.Status.CANCELLED, self.staff)

        fresh = Order.objects.get(pk=order.pk)
        self.assertEqual(fresh.status, Order.Status.CANCELLED)
        self.assertEqual(fresh.payment_status, Order.PaymentStatus.REFUNDED)
        refund = Payment.objects.get(order=order, kind=Payment.Kind.REFUND)
        self.assertEqual(refund.amount, order.total_amount)

    def test_cancel_returns_goods_to_stock(self):
        order = self._order()
        self.assertEqual(StockLedger.available(self.product), 9)

        OrderStateMachine.transition(order, Order.Status.CANCELLED, self.staff, notes="Customer changed mind")

        self.assertEqual(StockLedger.available(self.product), 10)
        self.assertTrue(
            StockMovement.objects.filter(
                product=self.product,
                movement_type=StockMovement.MovementType.RESTOCK,
                reference_type="order",
                reference_id=str(order.pk),
            ).exists()
        )
        self.assertTrue(StockLedger.reconcile(self.product))
        self.assertIsNotNone(Order.objects.get(pk=order.pk).cancelled_at)

    def test_cancelling_wallet_order_refunds_wallet(self):
        customer = CustomerService.for_user(self.buyer)
        WalletLedger.credit(customer, "5000.00")
        order = self._order("wallet")

        OrderStateMachine.transition(order, Order.Status.CANCELLED, self.staff)

        customer.refresh_from_db()
        self.assertEqual(customer.wallet_balance, Decimal("5000.00"))
        self.assertEqual(Order.objects.get(pk=order.pk).payment_status, Order.PaymentStatus.REFUNDED)
        self.assertTrue(Payment.objects.filter(order=order, kind=Payment.Kind.REFUND).exists())

    def test_delivery_awards_loyalty_points_once(self):
        order = self._walk(
            self._order(), Order.Status.CONFIRMED, Order.Status.PROCESSING, Order.Status.READY, Order.Status.DELIVERED
        )

        customer = Customer.objects.get(user=self.buyer)
        # 2500 + 125 tax = 2625 -> 262 points
        self.assertEqual(customer.loyalty_points, 262)
        self.assertIsNotNone(customer.last_purchase_at)
        self.assertEqual(LoyaltyTransaction.objects.filter(order=order).count(), 1)
        self.assertEqual(OrderStatusHistory.objects.filter(order=order).count(), 5)


@override_settings(STORE_TAX_RATE=Decimal("0.05"))
class OrderViewsTests(APITestCase):
    def setUp(self):
        self.buyer = User.objects.create_user(email="buyer_api@example.com", password="Pass123!")
        self.staff = User.objects.create_user(email="staff_api@example.com", password="Pass123!", role="STAFF")
        self.product = make_product("Ajrakh Stole", "800.00", 2)
        self.client.force_authenticate(user=self.buyer)

    def test_cart_add_and_list(self):
        response = self.client.post("/order/cart/add/", {"product_id": str(self.product.id), "quantity": 2}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["items_count"], 2)

        listing = self.client.get("/order/cart/")
        self.assertEqual(listing.data["totals"]["subtotal"], "1600.00")

    def test_cart_add_out_of_stock_returns_conflict(self):
        response = self.client.post("/order/cart/add/", {"product_id": str(self.product.id), "quantity": 3}, format="json")
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT, response.data)
        self.assertEqual(response.data["code"], "OutOfStock")

    def test_checkout_endpoint(self):
        CartService.add(self.buyer, self.product, 1)
        response = self.client.post(
            "/order/cart/checkout/", {"shipping_address": ADDRESS, "payment_method": "cash"}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["status"], "pending")

        second = self.client.post(
            "/order/cart/checkout/", {"shipping_address": ADDRESS, "payment_method": "cash"}, format="json"
        )
        self.assertEqual(second.status_code, status.HTTP_400_BAD_REQUEST, second.data)
        self.assertEqual(second.data["code"], "EmptyCart")

        orders = self.client.get("/order/orders/")
        self.assertEqual(len(orders.data), 1)

    def test_checkout_conflict_lists_lines(self):
        item = CartService.add(self.buyer, self.product, 2)
        StockLedger.adjust(self.product, -1)
        response = self.client.post(
            "/order/cart/checkout/", {"shipping_address": ADDRESS, "payment_method": "cash"}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT, response.data)
        self.assertEqual(response.data["conflicts"][0]["cart_item_id"], str(item.id))

    def test_staff_transition_endpoint(self):
        CartService.add(self.buyer, self.product, 1)
        order = CheckoutService.checkout(self.buyer, ADDRESS, "cash")

        denied = self.client.post(f"/order/orders/{order.id}/status/", {"status": "confirmed"}, format="json")
        self.assertEqual(denied.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.staff)
        bad = self.client.post(f"/order/orders/{order.id}/status/", {"status": "delivered"}, format="json")
        self.assertEqual(bad.status_code, status.HTTP_409_CONFLICT)
        ok = self.client.post(f"/order/orders/{order.id}/status/", {"status": "confirmed"}, format="json")
        self.assertEqual(ok.status_code, status.HTTP_200_OK, ok.data)
        self.assertEqual(ok.data["allowed_next"], ["cancelled", "processing"])

    def test_pos_endpoint_is_staff_only(self):
        payload = {"items": [{"product_id": str(self.product.id), "quantity": 1}], "payment_method": "upi"}
        denied = self.client.post("/order/pos/", payload, format="json")
        self.assertEqual(denied.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.staff)
        created = self.client.post("/order/pos/", payload, format="json")
        self.assertEqual(created.status_code, status.HTTP_201_CREATED, created.data)
        self.assertEqual(created.data["source"], "pos")


class ConcurrentCheckoutTests(TransactionTestCase):
    def setUp(self):
        self.product = make_product("Pochampally Ikat", "3000.00", 3)
        self.buyers = [
            User.objects.create_user(email=f"race{i}@example.com", password="Pass123!") for i in range(2)
        ]
        for buyer in self.buyers:
            CartService.add(buyer, self.product, 2)

    def test_parallel_checkouts_never_oversell(self):
        barrier = threading.Barrier(len(self.buyers))

        def attempt(buyer):
            try:
                barrier.wait(timeout=5)
                CheckoutService.checkout(buyer, ADDRESS, "cash")
                return "ok"
            except InsufficientStock:
                return "insufficient"
            except Exception as exc:
                return f"other:{type(exc).__name__}:{exc}"
            finally:
                close_old_connections()

        with ThreadPoolExecutor(max_workers=len(self.buyers)) as pool:
            results = list(pool.map(attempt, self.buyers))

        self.assertEqual(sorted(results), ["insufficient", "ok"])
        self.assertEqual(StockLedger.available(self.product), 1)
        self.assertEqual(Order.objects.count(), 1)
