from rest_framework import serializers

from catalog.models import Product
from .models import CartItem, Order, OrderItem, OrderStatusHistory


class CartItemSerializer(serializers.ModelSerializer):
    product_id = serializers.UUIDField(source="product.id", read_only=True)
    product_name = serializers.CharField(source="product.name", read_only=True)
    unit_price = serializers.DecimalField(source="product.price", max_digits=12, decimal_places=2, read_only=True)
    line_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    available = serializers.SerializerMethodField()

    class Meta:
        model = CartItem
        fields = ["id", "product_id", "product_name", "size", "quantity", "unit_price", "line_total", "available"]

    def get_available(self, obj):
        inventory = getattr(obj.product, "inventory", None)
        return inventory.available if inventory else 0


class CartItemCreateSerializer(serializers.Serializer):
    product_id = serializers.PrimaryKeyRelatedField(queryset=Product.objects.all(), source="product")
    quantity = serializers.IntegerField(min_value=1, default=1)
    size = serializers.CharField(max_length=20, required=False, allow_blank=True, default="")


class CartItemUpdateSerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=1)


class CheckoutSerializer(serializers.Serializer):
    address_id = serializers.UUIDField(required=False)
    shipping_address = serializers.CharField(required=False, allow_blank=True)
    payment_method = serializers.ChoiceField(choices=Order.PaymentMethod.choices)
    notes = serializers.CharField(required=False, allow_blank=True, default="")

    def validate(self, attrs):
        if not attrs.get("address_id") and not (attrs.get("shipping_address") or "").strip():
            raise serializers.ValidationError("address_id or shipping_address is required")
        return attrs


class PosLineSerializer(serializers.Serializer):
    product_id = serializers.PrimaryKeyRelatedField(queryset=Product.objects.all(), source="product")
    quantity = serializers.IntegerField(min_value=1)
    size = serializers.CharField(max_length=20, required=False, allow_blank=True, default="")


class PosSaleSerializer(serializers.Serializer):
    items = PosLineSerializer(many=True, allow_empty=False)
    customer_id = serializers.UUIDField(required=False, allow_null=True)
    discount_percent = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=0, max_value=100, default=0)
    payment_method = serializers.ChoiceField(choices=Order.PaymentMethod.choices, default=Order.PaymentMethod.CASH)


class OrderTransitionSerializer(serializers.Serializer):
    status = serializers.CharField()
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class OrderItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderItem
        fields = ["id", "product", "product_name", "sku", "size", "unit_price", "quantity", "line_total"]


class OrderStatusHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderStatusHistory
        fields = ["from_status", "to_status", "notes", "changed_by", "created_at"]


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)
    status_history = OrderStatusHistorySerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id", "order_number", "source", "status", "payment_status", "payment_method",
            "customer_name", "customer_phone", "customer_email", "shipping_address",
            "subtotal", "discount_amount", "tax_amount", "shipping_amount", "total_amount",
            "notes", "items", "status_history", "delivered_at", "cancelled_at", "created_at",
        ]
        read_only_fields = fields
