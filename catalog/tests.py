from rest_framework import status
from rest_framework.test import APITestCase
from django.test import TestCase

from account.models import User
from catalog.models import Category, Product, ProductReview, WishlistItem
from catalog.services import WishlistService
from core.exceptions import AuthenticationRequired
from inventory.services import StockLedger


class ProductModelTests(TestCase):
    def test_sku_is_generated_when_blank(self):
        product = Product.objects.create(name="Ajrakh Kurta", price="1200.00")
        self.assertTrue(product.sku.startswith("AJRAKHKURTA-"))

    def test_rating_summary_is_derived_from_reviews(self):
        product = Product.objects.create(name="Bagru Dupatta", price="700.00")
        self.assertEqual(product.rating_summary(), {"average": None, "count": 0})

        for i, rating in enumerate((5, 4, 4)):
            user = User.objects.create_user(email=f"r{i}@example.com", password="Pass123!")
            ProductReview.objects.create(product=product, user=user, rating=rating)

        self.assertEqual(product.rating_summary(), {"average": 4.3, "count": 3})


class WishlistServiceTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(email="wish@example.com", password="Pass123!")
        self.product = Product.objects.create(name="Ikat Saree", price="3200.00")

    def test_add_is_idempotent_and_remove_deletes(self):
        WishlistService.add(self.user, self.product)
        WishlistService.add(self.user, self.product)
        self.assertEqual(WishlistItem.objects.filter(user=self.user).count(), 1)

        WishlistService.remove(self.user, self.product)
        self.assertFalse(WishlistService.items(self.user).exists())

    def test_anonymous_cannot_use_wishlist(self):
        with self.assertRaises(AuthenticationRequired):
            WishlistService.add(None, self.product)


class ProductViewsTests(APITestCase):
    def setUp(self):
        self.staff = User.objects.create_user(email="staff_cat@example.com", password="Pass123!", role="STAFF")
        self.customer = User.objects.create_user(email="buyer_cat@example.com", password="Pass123!")
        self.category = Category.objects.create(name="Stoles")
        self.active = Product.objects.create(name="Shibori Stole", category=self.category, price="850.00", cost_price="400.00")
        self.hidden = Product.objects.create(
            name="Old Stole", category=self.category, price="500.00", status=Product.Status.INACTIVE
        )
        StockLedger.restock(self.active, 4)

    def test_customers_see_only_active_products_with_availability(self):
        self.client.force_authenticate(user=self.customer)
        response = self.client.get("/catalog/products/")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        rows = response.data["results"] if isinstance(response.data, dict) else response.data
        self.assertEqual([row["id"] for row in rows], [str(self.active.id)])
        self.assertEqual(rows[0]["available"], 4)
        self.assertNotIn("cost_price", rows[0])

    def test_customer_cannot_create_products(self):
        self.client.force_authenticate(user=self.customer)
        response = self.client.post("/catalog/products/", {"name": "X", "price": "10.00"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_staff_creates_product_with_inventory_row(self):
        self.client.force_authenticate(user=self.staff)
        response = self.client.post(
            "/catalog/products/",
            {"name": "Leheriya Saree", "price": "2400.00", "category_id": str(self.category.id)},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        product = Product.objects.get(pk=response.data["id"])
        self.assertEqual(StockLedger.available(product), 0)

    def test_delete_archives_product(self):
        self.client.force_authenticate(user=self.staff)
        response = self.client.delete(f"/catalog/products/{self.active.id}/")
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.active.refresh_from_db()
        self.assertEqual(self.active.status, Product.Status.ARCHIVED)

    def test_one_review_per_user(self):
        self.client.force_authenticate(user=self.customer)
        url = f"/catalog/products/{self.active.id}/reviews/"
        first = self.client.post(url, {"rating": 5, "comment": "Lovely"}, format="json")
        second = self.client.post(url, {"rating": 4}, format="json")

        self.assertEqual(first.status_code, status.HTTP_201_CREATED, first.data)
        self.assertEqual(second.status_code, status.HTTP_403_FORBIDDEN)
        detail = self.client.get(f"/catalog/products/{self.active.id}/")
        self.assertEqual(detail.data["rating"], {"average": 5.0, "count": 1})

    def test_wishlist_endpoints(self):
        self.client.force_authenticate(user=self.customer)
        added = self.client.post(f"/catalog/products/{self.active.id}/wishlist/")
        self.assertEqual(added.status_code, status.HTTP_201_CREATED, added.data)

        listed = self.client.get("/catalog/wishlist/")
        rows = listed.data["results"] if isinstance(listed.data, dict) else listed.data
        self.assertEqual(len(rows), 1)

        removed = self.client.delete(f"/catalog/products/{self.active.id}/wishlist/")
        self.assertEqual(removed.status_code, status.HTTP_204_NO_CONTENT)
