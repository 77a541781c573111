from rest_framework import serializers

from .models import Inventory, StockMovement


class InventorySerializer(serializers.ModelSerializer):
    product_id = serializers.UUIDField(source="product.id", read_only=True)
    product_name = serializers.CharField(source="product.name", read_only=True)
    available = serializers.IntegerField(read_only=True)
    low_stock_threshold = serializers.IntegerField(source="product.low_stock_threshold", read_only=True)

    class Meta:
        model = Inventory
        fields = [
            "product_id", "product_name", "quantity", "reserved_quantity", "available",
            "low_stock_threshold", "location", "last_restocked_at", "updated_at",
        ]
        read_only_fields = fields


class StockMovementSerializer(serializers.ModelSerializer):
    class Meta:
        model = StockMovement
        fields = [
            "id", "product", "quantity_change", "movement_type",
            "reference_type", "reference_id", "notes", "created_by", "created_at",
        ]
        read_only_fields = fields


class RestockSerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=1)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class AdjustStockSerializer(serializers.Serializer):
    delta = serializers.IntegerField()
    notes = serializers.CharField(required=False, allow_blank=True, default="")

    def validate_delta(self, value):
        if value == 0:
            raise serializers.ValidationError("delta must not be zero")
        return value
