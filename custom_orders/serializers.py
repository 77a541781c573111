from rest_framework import serializers

from .models import CustomOrder, CustomOrderImage, CustomOrderMessage, CustomOrderStatusHistory


class CustomOrderImageSerializer(serializers.ModelSerializer):
    class Meta:
        model = CustomOrderImage
        fields = ["id", "image_url", "caption", "created_at"]
        read_only_fields = ["id", "created_at"]


class CustomOrderStatusHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = CustomOrderStatusHistory
        fields = ["status", "notes", "is_override", "changed_by", "created_at"]


class CustomOrderMessageSerializer(serializers.ModelSerializer):
    author = serializers.SerializerMethodField(read_only=True)

    class Meta:
        model = CustomOrderMessage
        fields = ["id", "author", "message", "is_internal", "created_at"]
        read_only_fields = ["id", "author", "created_at"]

    def get_author(self, obj):
        if obj.user is None:
            return None
        return {
            "id": str(obj.user.id),
            "full_name": obj.user.full_name,
            "is_staff": obj.user.is_store_staff,
        }


class CustomOrderSerializer(serializers.ModelSerializer):
    images = CustomOrderImageSerializer(many=True, read_only=True)
    status_history = CustomOrderStatusHistorySerializer(many=True, read_only=True)
    image_urls = serializers.ListField(child=serializers.URLField(), write_only=True, required=False)

    class Meta:
        model = CustomOrder
        fields = [
            "id", "order_number", "status", "product_type", "preferred_fabrics", "intended_occasion",
            "color_preferences", "size_requirements", "design_instructions", "special_requirements",
            "budget_range", "expected_delivery_timeline", "estimated_price", "final_price",
            "assigned_to", "estimated_completion_date", "submitted_at", "discussion_started_at",
            "quote_sent_at", "quote_accepted_at", "production_started_at", "ready_at", "delivered_at",
            "cancelled_at", "images", "status_history", "image_urls", "created_at",
        ]
        read_only_fields = [
            "id", "order_number", "status", "estimated_price", "final_price", "assigned_to",
            "estimated_completion_date", "submitted_at", "discussion_started_at", "quote_sent_at",
            "quote_accepted_at", "production_started_at", "ready_at", "delivered_at", "cancelled_at",
            "created_at",
        ]

    def validate_preferred_fabrics(self, value):
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise serializers.ValidationError("preferred_fabrics must be a list of fabric names.")
        return value


class CustomOrderTransitionSerializer(serializers.Serializer):
    status = serializers.CharField()
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    override = serializers.BooleanField(required=False, default=False)
    final_price = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)


class PriceSerializer(serializers.Serializer):
    estimated_price = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    final_price = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)

    def validate(self, attrs):
        if "estimated_price" not in attrs and "final_price" not in attrs:
            raise serializers.ValidationError("estimated_price or final_price is required")
        return attrs


class AssignSerializer(serializers.Serializer):
    staff_id = serializers.UUIDField()
    estimated_completion_date = serializers.DateField(required=False, allow_null=True)
