from decimal import Decimal

from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from account.models import User
from catalog.models import Product
from core.exceptions import ImmutableFieldViolation, InvalidAmount, InvalidInput, InvalidTransition
from inventory.services import StockLedger
from order.models import Order
from order.services import CartService, CheckoutService, OrderStateMachine
from payment.models import Payment
from payment.services import PaymentService


@override_settings(STORE_TAX_RATE=Decimal("0"), STORE_COD_SURCHARGE=Decimal("0"))
class PaymentServiceTests(TestCase):
    def setUp(self):
        self.buyer = User.objects.create_user(email="payer@example.com", password="Pass123!")
        self.staff = User.objects.create_user(email="cashier@example.com", password="Pass123!", role="STAFF")
        self.product = Product.objects.create(name="Bandhani Dupatta", price="2500.00")
        StockLedger.restock(self.product, 5)
        CartService.add(self.buyer, self.product, 1)
        # cash on delivery: nothing collected yet
        self.order = CheckoutService.checkout(self.buyer, "Ahmedabad", "cash")

    def test_partial_then_full_payment(self):
        self.assertEqual(self.order.payment_status, Order.PaymentStatus.PENDING)

        PaymentService.record_payment(self.order, "1000.00", "cash", actor=self.staff)
        self.assertEqual(self.order.payment_status, Order.PaymentStatus.PARTIAL)

        PaymentService.record_payment(self.order, "1500.00", "upi", actor=self.staff, transaction_id="UPI-123")
        self.assertEqual(Order.objects.get(pk=self.order.pk).payment_status, Order.PaymentStatus.PAID)
        self.assertEqual(PaymentService.net_paid(self.order), Decimal("2500.00"))

    def test_overpayment_is_rejected(self):
        with self.assertRaises(InvalidAmount):
            PaymentService.record_payment(self.order, "2500.01", "cash")
        self.assertFalse(Payment.objects.filter(order=self.order).exists())

    def test_non_positive_amount_and_unknown_method(self):
        with self.assertRaises(InvalidAmount):
            PaymentService.record_payment(self.order, "0", "cash")
        with self.assertRaises(InvalidInput):
            PaymentService.record_payment(self.order, "10", "cheque")

    def test_paid_order_cannot_take_more(self):
        PaymentService.record_payment(self.order, "2500.00", "cash")
        with self.assertRaises(InvalidAmount):
            PaymentService.record_payment(self.order, "1.00", "cash")

    def test_cancelled_order_cannot_take_payment(self):
        OrderStateMachine.transition(self.order, Order.Status.CANCELLED, self.staff)
        with self.assertRaises(InvalidTransition):
            PaymentService.record_payment(self.order, "100.00", "cash")

    def test_refund_returns_everything_once(self):
        PaymentService.record_payment(self.order, "1000.00", "cash")

        refund = PaymentService.refund(self.order, actor=self.staff, notes="Damaged in transit")

        self.assertEqual(refund.kind, Payment.Kind.REFUND)
        self.assertEqual(refund.amount, Decimal("1000.00"))
        self.assertEqual(self.order.payment_status, Order.PaymentStatus.REFUNDED)
        self.assertEqual(PaymentService.net_paid(self.order), Decimal("0.00"))

        self.assertIsNone(PaymentService.refund(self.order, actor=self.staff))
        self.assertEqual(Payment.objects.filter(order=self.order, kind=Payment.Kind.REFUND).count(), 1)

    def test_refund_without_payment_only_moves_status(self):
        self.assertIsNone(PaymentService.refund(self.order))
        self.assertEqual(Order.objects.get(pk=self.order.pk).payment_status, Order.PaymentStatus.REFUNDED)
        with self.assertRaises(InvalidTransition):
            PaymentService.record_payment(self.order, "100.00", "cash")

    def test_payment_rows_are_append_only(self):
        payment = PaymentService.record_payment(self.order, "500.00", "cash")
        payment.amount = Decimal("5.00")
        with self.assertRaises(ImmutableFieldViolation):
            payment.save()


class OrderPaymentsApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.buyer = User.objects.create_user(email="api_payer@example.com", password="Pass123!")
        self.staff = User.objects.create_user(email="api_cashier@example.com", password="Pass123!", role="STAFF")
        product = Product.objects.create(name="Kalamkari Bag", price="3000.00")
        StockLedger.restock(product, 2)
        CartService.add(self.buyer, product, 1)
        self.order = CheckoutService.checkout(self.buyer, "Chennai", "cash")
        self.url = f"/payment/orders/{self.order.id}/"

    def test_customers_cannot_record_payments(self):
        self.client.force_authenticate(user=self.buyer)
        response = self.client.post(self.url, {"amount": "100.00", "method": "cash"}, format="json")
        self.assertEqual(response.status_code, 403)

    def test_staff_records_and_lists_payments(self):
        self.client.force_authenticate(user=self.staff)
        created = self.client.post(self.url, {"amount": "100.00", "method": "cash"}, format="json")
        self.assertEqual(created.status_code, 201, created.data)
        self.assertEqual(created.data["payment_status"], "partial")

        listing = self.client.get(self.url)
        self.assertEqual(listing.status_code, 200)
        self.assertEqual(len(listing.data["payments"]), 1)
        self.assertEqual(listing.data["net_paid"], Decimal("100.00"))

    def test_overpayment_maps_to_bad_request(self):
        self.client.force_authenticate(user=self.staff)
        response = self.client.post(self.url, {"amount": "999999.00", "method": "cash"}, format="json")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["code"], "InvalidAmount")
