from decimal import Decimal

from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from account.models import Customer, User
from account.services import CustomerService
from core.exceptions import ImmutableFieldViolation, InsufficientBalance, InvalidAmount, PermissionDenied
from .models import LoyaltyTransaction, RedeemableItem, WalletTransaction
from .services import LoyaltyLedger, WalletLedger, points_for_amount, reconcile, redeem, tier_for_points


@override_settings(
    LOYALTY_CURRENCY_PER_POINT=Decimal("10"),
    LOYALTY_TIER_THRESHOLDS={"silver": 2000, "gold": 5000, "platinum": 10000},
)
class LoyaltyLedgerTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(email="loyal@example.com", password="Pass123!", full_name="Meera")
        self.staff = User.objects.create_user(email="desk@example.com", password="Pass123!", role="STAFF")
        self.customer = CustomerService.for_user(self.user)

    def test_points_for_amount_rounds_down(self):
        self.assertEqual(points_for_amount(Decimal("2625.00")), 262)
        self.assertEqual(points_for_amount(Decimal("9.99")), 0)

    def test_tiers_follow_thresholds(self):
        self.assertEqual(tier_for_points(0), "bronze")
        self.assertEqual(tier_for_points(1999), "bronze")
        self.assertEqual(tier_for_points(2000), "silver")
        self.assertEqual(tier_for_points(5000), "gold")
        self.assertEqual(tier_for_points(12000), "platinum")

    def test_earn_and_spend_track_balance_and_tier(self):
        entry = LoyaltyLedger.earn(self.customer, 2100, description="Diwali bonus")

        self.assertEqual(entry.balance_before, 0)
        self.assertEqual(entry.balance_after, 2100)
        stored = Customer.objects.get(pk=self.customer.pk)
        self.assertEqual(stored.loyalty_points, 2100)
        self.assertEqual(stored.loyalty_tier, "silver")

        LoyaltyLedger.spend(self.customer, 200)
        stored.refresh_from_db()
        self.assertEqual(stored.loyalty_points, 1900)
        self.assertEqual(stored.loyalty_tier, "bronze")
        self.assertTrue(reconcile(self.customer))

    def test_spending_more_than_balance_fails(self):
        LoyaltyLedger.earn(self.customer, 50)
        with self.assertRaises(InsufficientBalance):
            LoyaltyLedger.spend(self.customer, 51)
        self.assertEqual(Customer.objects.get(pk=self.customer.pk).loyalty_points, 50)
        self.assertEqual(LoyaltyTransaction.objects.filter(customer=self.customer).count(), 1)

    def test_points_must_be_positive_integers(self):
        for bad in (0, -5, 2.5, True):
            with self.assertRaises(InvalidAmount):
                LoyaltyLedger.earn(self.customer, bad)

    def test_adjust_is_staff_only(self):
        with self.assertRaises(PermissionDenied):
            LoyaltyLedger.adjust(self.customer, 10, self.user)

        up = LoyaltyLedger.adjust(self.customer, 30, self.staff, description="Goodwill")
        down = LoyaltyLedger.adjust(self.customer, -10, self.staff)
        self.assertEqual(up.transaction_type, LoyaltyTransaction.TransactionType.ADJUSTED_UP)
        self.assertEqual(down.signed_points, -10)
        self.assertEqual(Customer.objects.get(pk=self.customer.pk).loyalty_points, 20)

    def test_entries_are_append_only(self):
        entry = LoyaltyLedger.earn(self.customer, 10)
        entry.points = 1000
        with self.assertRaises(ImmutableFieldViolation):
            entry.save()


@override_settings(WALLET_MIN_TOPUP=Decimal("100"))
class WalletLedgerTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(email="wallet@example.com", password="Pass123!")
        self.customer = CustomerService.for_user(self.user)

    def test_credit_and_debit(self):
        WalletLedger.credit(self.customer, "500.00", reference_type="topup")
        entry = WalletLedger.debit(self.customer, "120.50", reference_type="order", reference_id="ORD-1")

        self.assertEqual(entry.balance_before, Decimal("500.00"))
        self.assertEqual(entry.balance_after, Decimal("379.50"))
        self.assertEqual(entry.signed_amount, Decimal("-120.50"))
        self.assertEqual(Customer.objects.get(pk=self.customer.pk).wallet_balance, Decimal("379.50"))
        self.assertTrue(reconcile(self.customer))

    def test_overdraw_is_rejected(self):
        WalletLedger.credit(self.customer, "50.00")
        with self.assertRaises(InsufficientBalance):
            WalletLedger.debit(self.customer, "50.01")
        self.assertEqual(WalletTransaction.objects.filter(customer=self.customer).count(), 1)

    def test_amounts_must_be_positive(self):
        with self.assertRaises(InvalidAmount):
            WalletLedger.credit(self.customer, "0")
        with self.assertRaises(InvalidAmount):
            WalletLedger.debit(self.customer, "-10")

    def test_top_up_minimum(self):
        with self.assertRaises(InvalidAmount):
            WalletLedger.top_up(self.user, "99.99")
        entry = WalletLedger.top_up(self.user, "100")
        self.assertEqual(entry.reference_type, "topup")

    def test_reconcile_detects_drift(self):
        WalletLedger.credit(self.customer, "200.00")
        Customer.objects.filter(pk=self.customer.pk).update(wallet_balance=Decimal("250.00"))
        self.assertFalse(reconcile(self.customer))


class RedeemTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(email="redeem@example.com", password="Pass123!")
        self.customer = CustomerService.for_user(self.user)
        self.voucher = RedeemableItem.objects.create(
            name="INR 250 voucher", points_required=500, wallet_credit=Decimal("250.00")
        )

    def test_redeem_moves_points_into_wallet(self):
        LoyaltyLedger.earn(self.customer, 600)

        spent, credited = redeem(self.user, self.voucher)

        self.assertEqual(spent.balance_after, 100)
        self.assertEqual(credited.amount, Decimal("250.00"))
        stored = Customer.objects.get(pk=self.customer.pk)
        self.assertEqual(stored.loyalty_points, 100)
        self.assertEqual(stored.wallet_balance, Decimal("250.00"))

    def test_redeem_without_points_changes_nothing(self):
        LoyaltyLedger.earn(self.customer, 100)
        with self.assertRaises(InsufficientBalance):
            redeem(self.user, self.voucher)
        self.assertEqual(Customer.objects.get(pk=self.customer.pk).wallet_balance, Decimal("0.00"))


@override_settings(WALLET_MIN_TOPUP=Decimal("100"))
class RewardsApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create_user(email="rewards@example.com", password="Pass123!")
        self.staff = User.objects.create_user(email="rewards_staff@example.com", password="Pass123!", role="STAFF")
        self.client.force_authenticate(self.user)

    def test_balance_and_top_up(self):
        resp = self.client.get("/rewards/")
        self.assertEqual(resp.status_code, 200, resp.data)
        self.assertEqual(resp.data["loyalty_points"], 0)

        topped = self.client.post("/rewards/wallet/top-up/", {"amount": "500.00"}, format="json")
        self.assertEqual(topped.status_code, 201, topped.data)
        history = self.client.get("/rewards/wallet/")
        self.assertEqual(len(history.data), 1)

        too_small = self.client.post("/rewards/wallet/top-up/", {"amount": "10.00"}, format="json")
        self.assertEqual(too_small.status_code, 400)
        self.assertEqual(too_small.data["code"], "InvalidAmount")

    def test_redeem_endpoint(self):
        item = RedeemableItem.objects.create(name="Free shipping", points_required=100, wallet_credit=Decimal("150.00"))
        LoyaltyLedger.earn(CustomerService.for_user(self.user), 120)

        resp = self.client.post(f"/rewards/items/{item.id}/redeem/")
        self.assertEqual(resp.status_code, 201, resp.data)
        self.assertEqual(resp.data["loyalty_points"], 20)

        again = self.client.post(f"/rewards/items/{item.id}/redeem/")
        self.assertEqual(again.status_code, 400)
        self.assertEqual(again.data["code"], "InsufficientBalance")

    def test_adjust_requires_staff(self):
        customer = CustomerService.for_user(self.user)
        denied = self.client.post("/rewards/points/adjust/", {"customer_id": str(customer.id), "points": 50}, format="json")
        self.assertEqual(denied.status_code, 403)

        self.client.force_authenticate(self.staff)
        ok = self.client.post("/rewards/points/adjust/", {"customer_id": str(customer.id), "points": 50}, format="json")
        self.assertEqual(ok.status_code, 201, ok.data)
        self.assertEqual(Customer.objects.get(pk=customer.pk).loyalty_points, 50)
