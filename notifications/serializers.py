from rest_framework import serializers

from .models import DeviceToken, Notification


class DeviceTokenSerializer(serializers.ModelSerializer):
    class Meta:
        model = DeviceToken
        fields = ["id", "token", "device_type", "is_active", "last_seen_at"]
        read_only_fields = ["id", "is_active", "last_seen_at"]
        # uniqueness is handled by re-binding the token, not by rejecting it
        extra_kwargs = {"token": {"validators": []}}


class DeviceTokenDeactivateSerializer(serializers.Serializer):
    token = serializers.CharField(required=False, allow_blank=True, default="")


class NotificationSerializer(serializers.ModelSerializer):
    entity_type = serializers.SerializerMethodField()
    entity_id = serializers.SerializerMethodField()

    class Meta:
        model = Notification
        fields = ["id", "type", "title", "message", "entity_type", "entity_id", "payload", "is_read", "read_at", "created_at"]
        read_only_fields = fields

    def get_entity_type(self, obj):
        return obj.payload.get("entity_type")

    def get_entity_id(self, obj):
        return obj.payload.get("entity_id")
