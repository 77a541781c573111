from rest_framework import serializers
from .models import Product, Category, ProductReview, WishlistItem


class CategorySerializer(serializers.ModelSerializer):
    class Meta:
        model = Category
        fields = ["id", "name", "slug", "description"]
        read_only_fields = ["id", "slug"]


class ProductSerializer(serializers.ModelSerializer):
    category = CategorySerializer(read_only=True)
    category_id = serializers.PrimaryKeyRelatedField(
        queryset=Category.objects.all(), source='category', write_only=True, required=False, allow_null=True
    )
    available = serializers.SerializerMethodField(read_only=True)
    rating = serializers.SerializerMethodField(read_only=True)

    class Meta:
        model = Product
        fields = [
            'id', 'name', 'description', 'tagline', 'category_id', 'category', 'fabric', 'technique',
            'image_url', 'sku', 'barcode', 'price', 'cost_price', 'status', 'low_stock_threshold',
            'is_featured', 'available', 'rating',
        ]
        read_only_fields = ['id']

    def get_fields(self):
        fields = super().get_fields()
        request = self.context.get("request")
        user = getattr(request, "user", None)
        # Cost price is back-office data
        if not getattr(user, "is_store_staff", False):
            fields.pop("cost_price", None)
        return fields

    def get_available(self, obj):
        inventory = getattr(obj, "inventory", None)
        return inventory.available if inventory else 0

    def get_rating(self, obj):
        return obj.rating_summary()

    def validate_price(self, value):
        if value <= 0:
            raise serializers.ValidationError("price must be greater than zero.")
        return value

    def update(self, instance, validated_data):
        if "sku" in validated_data and instance.sku and validated_data["sku"] != instance.sku:
            raise serializers.ValidationError({"sku": "SKU cannot change once assigned."})
        return super().update(instance, validated_data)


class ProductReviewSerializer(serializers.ModelSerializer):
    user = serializers.SerializerMethodField(read_only=True)

    class Meta:
        model = ProductReview
        fields = ["id", "product", "user", "rating", "title", "comment", "created_at", "updated_at"]
        read_only_fields = ["id", "product", "user", "created_at", "updated_at"]

    def validate_rating(self, value):
        if value < 1 or value > 5:
            raise serializers.ValidationError("rating must be between 1 and 5.")
        return value

    def get_user(self, obj):
        return {
            "id": str(obj.user.id),
            "full_name": obj.user.full_name,
        }


class WishlistItemSerializer(serializers.ModelSerializer):
    product = ProductSerializer(read_only=True)

    class Meta:
        model = WishlistItem
        fields = ["id", "product", "created_at"]
