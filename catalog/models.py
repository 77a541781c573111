from django.db import models
from django.db.models import Avg, Count
import uuid
from django.utils.text import slugify


class Category(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    slug = models.SlugField(unique=True, blank=True, null=True)
    description = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "Categories"

    def save(self, *args, **kwargs):
        if not self.slug and self.name:
            base_slug = slugify(self.name) or f"category-{uuid.uuid4().hex[:8]}"
            candidate = base_slug
            counter = 1
            while Category.objects.filter(slug=candidate).exclude(pk=self.pk).exists():
                candidate = f"{base_slug}-{counter}"
                counter += 1
            self.slug = candidate
        super().save(*args, **kwargs)

    def __str__(self):
        return self.name


class Product(models.Model):
    class Status(models.TextChoices):
        ACTIVE = "active", "Active"
        INACTIVE = "inactive", "Inactive"
        ARCHIVED = "archived", "Archived"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    tagline = models.CharField(max_length=255, blank=True)
    category = models.ForeignKey(Category, on_delete=models.SET_NULL, null=True, blank=True, related_name="products")
    fabric = models.CharField(max_length=80, blank=True)  # e.g. "Chanderi silk"
    technique = models.CharField(max_length=80, blank=True)  # e.g. "Block print"
    image_url = models.URLField(blank=True)
    sku = models.CharField(max_length=100, unique=True, blank=True, null=True)
    barcode = models.CharField(max_length=64, unique=True, blank=True, null=True)
    price = models.DecimalField(max_digits=12, decimal_places=2)
    cost_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.ACTIVE)
    low_stock_threshold = models.PositiveIntegerField(default=5)
    is_featured = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=["status"], name="catalog_product_status_idx"),
            models.Index(fields=["is_featured"], name="catalog_product_featured_idx"),
        ]

    def save(self, *args, **kwargs):
        if not self.sku:
            base = slugify(self.name) if self.name else "product"
            base = (base or "product").upper().replace("-", "")
            base = base[:12] if base else "PRODUCT"
            candidate = f"{base}-{uuid.uuid4().hex[:6].upper()}"
            while Product.objects.filter(sku=candidate).exclude(pk=self.pk).exists():
                candidate = f"{base}-{uuid.uuid4().hex[:6].upper()}"
            self.sku = candidate
        super().save(*args, **kwargs)

    def __str__(self):
        return self.name

    @property
    def is_sellable(self) -> bool:
        return self.status == self.Status.ACTIVE

    def rating_summary(self):
        summary = self.reviews.aggregate(average=Avg("rating"), count=Count("id"))
        average = summary["average"]
        return {
            "average": round(float(average), 1) if average is not None else None,
            "count": summary["count"],
        }


class ProductReview(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    product = models.ForeignKey(Product, related_name="reviews", on_delete=models.CASCADE)
    user = models.ForeignKey("account.User", related_name="product_reviews", on_delete=models.CASCADE)
    rating = models.PositiveSmallIntegerField()
    title = models.CharField(max_length=120, blank=True)
    comment = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ("product", "user")
        indexes = [
            models.Index(fields=["product", "created_at"], name="catalog_review_product_idx"),
            models.Index(fields=["rating"], name="catalog_review_rating_idx"),
        ]
        constraints = [
            models.CheckConstraint(condition=models.Q(rating__gte=1, rating__lte=5), name="review_rating_1_to_5"),
        ]

    def __str__(self):
        return f"{self.product_id} - {self.user_id} - {self.rating}"


class WishlistItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey("account.User", related_name="wishlist", on_delete=models.CASCADE)
    product = models.ForeignKey(Product, related_name="wishlisted_by", on_delete=models.CASCADE)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ("user", "product")
        ordering = ["-created_at"]
