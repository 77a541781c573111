from rest_framework import serializers

from .models import LoyaltyTransaction, RedeemableItem, WalletTransaction


class LoyaltyTransactionSerializer(serializers.ModelSerializer):
    order_number = serializers.CharField(source="order.order_number", read_only=True, default=None)

    class Meta:
        model = LoyaltyTransaction
        fields = ["id", "transaction_type", "points", "balance_before", "balance_after", "order_number", "description", "created_at"]


class WalletTransactionSerializer(serializers.ModelSerializer):
    class Meta:
        model = WalletTransaction
        fields = [
            "id", "transaction_type", "amount", "balance_before", "balance_after",
            "reference_type", "reference_id", "description", "created_at",
        ]


class RedeemableItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = RedeemableItem
        fields = ["id", "name", "description", "points_required", "wallet_credit", "is_active"]


class TopUpSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)


class LoyaltyAdjustSerializer(serializers.Serializer):
    customer_id = serializers.UUIDField()
    points = serializers.IntegerField()
    description = serializers.CharField(required=False, allow_blank=True, default="")

    def validate_points(self, value):
        if value == 0:
            raise serializers.ValidationError("points must be non-zero.")
        return value
