from django.test import TestCase
from rest_framework import status
from rest_framework.test import APITestCase

from account.models import Customer, CustomerAddress, User
from account.services import CustomerService
from core.exceptions import AuthenticationRequired, PermissionDenied, require_staff


class UserModelTests(TestCase):
    def test_create_user_hashes_password(self):
        user = User.objects.create_user(email="user@example.com", password="Pass123!")

        self.assertNotEqual(user.password, "Pass123!")
        self.assertTrue(user.check_password("Pass123!"))
        self.assertEqual(user.role, User.Role.CUSTOMER)

    def test_create_user_requires_email(self):
        with self.assertRaisesMessage(ValueError, "Users must have an email"):
            User.objects.create_user(email="", password="Pass123!")

    def test_superuser_is_store_staff(self):
        admin = User.objects.create_superuser(email="admin@example.com", password="Pass123!")
        self.assertEqual(admin.role, User.Role.ADMIN)
        self.assertTrue(admin.is_store_staff)

    def test_staff_role_checks(self):
        staff = User.objects.create_user(email="staff@example.com", password="Pass123!", role=User.Role.STAFF)
        customer = User.objects.create_user(email="c@example.com", password="Pass123!")

        self.assertIs(require_staff(staff), staff)
        with self.assertRaises(PermissionDenied):
            require_staff(customer)
        with self.assertRaises(AuthenticationRequired):
            require_staff(None)


class CustomerServiceTests(TestCase):
    def test_for_user_creates_customer_once(self):
        user = User.objects.create_user(email="meera@example.com", password="Pass123!", full_name="Meera")

        first = CustomerService.for_user(user)
        second = CustomerService.for_user(user)

        self.assertEqual(first.pk, second.pk)
        self.assertEqual(first.name, "Meera")
        self.assertEqual(first.loyalty_points, 0)
        self.assertEqual(Customer.objects.filter(user=user).count(), 1)

    def test_for_user_rejects_anonymous(self):
        with self.assertRaises(AuthenticationRequired):
            CustomerService.for_user(None)


class AccountApiTests(APITestCase):
    def test_register_always_creates_customers(self):
        response = self.client.post(
            "/auth/register/",
            {"email": "new@example.com", "password": "Pass123!", "full_name": "New", "role": "ADMIN"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(User.objects.get(email="new@example.com").role, User.Role.CUSTOMER)

    def test_profile_balances_are_read_only(self):
        user = User.objects.create_user(email="p@example.com", password="Pass123!")
        self.client.force_authenticate(user=user)

        response = self.client.patch("/auth/profile/", {"city": "Jaipur", "wallet_balance": "9999.00"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        customer = Customer.objects.get(user=user)
        self.assertEqual(customer.city, "Jaipur")
        self.assertEqual(str(customer.wallet_balance), "0.00")

    def test_new_default_address_replaces_previous_default(self):
        user = User.objects.create_user(email="addr@example.com", password="Pass123!")
        self.client.force_authenticate(user=user)
        payload = {
            "full_name": "Asha",
            "phone": "9876543210",
            "address_line1": "12 MG Road",
            "city": "Bengaluru",
            "state": "Karnataka",
            "pincode": "560001",
            "is_default": True,
        }
        self.client.post("/auth/addresses/", payload, format="json")
        second = self.client.post("/auth/addresses/", {**payload, "address_line1": "7 Park St"}, format="json")

        self.assertEqual(second.status_code, status.HTTP_201_CREATED, second.data)
        defaults = CustomerAddress.objects.filter(user=user, is_default=True)
        self.assertEqual(defaults.count(), 1)
        self.assertEqual(defaults.first().address_line1, "7 Park St")

    def test_pincode_must_be_six_digits(self):
        user = User.objects.create_user(email="pin@example.com", password="Pass123!")
        self.client.force_authenticate(user=user)
        response = self.client.post(
            "/auth/addresses/",
            {
                "full_name": "Asha",
                "phone": "9876543210",
                "address_line1": "12 MG Road",
                "city": "Bengaluru",
                "state": "Karnataka",
                "pincode": "5600",
            },
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("pincode", response.data)
