from rest_framework.serializers import ModelSerializer
from django.contrib.auth import get_user_model
from .models import *
from rest_framework import serializers
User = get_user_model()

class UserSerializer(ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'full_name', 'email', 'phone_number', 'role', 'created_at', 'updated_at', 'password']
        extra_kwargs = {
            'password': {'write_only': True},}
        read_only_fields = ('id', 'role', 'created_at', 'updated_at')
    def create(self, validated_data):
        password = validated_data.pop('password', None)
        return User.objects.create_user(password=password, role=User.Role.CUSTOMER, **validated_data)


class CustomerSerializer(ModelSerializer):
    class Meta:
        model = Customer
        fields = [
            'id', 'name', 'phone', 'email', 'whatsapp_number', 'address', 'city', 'state', 'pincode',
            'customer_type', 'total_orders', 'total_spent', 'last_purchase_at',
            'loyalty_points', 'loyalty_tier', 'wallet_balance',
        ]
        read_only_fields = (
            'id', 'customer_type', 'total_orders', 'total_spent', 'last_purchase_at',
            'loyalty_points', 'loyalty_tier', 'wallet_balance',
        )


class CustomerAddressSerializer(ModelSerializer):
    class Meta:
        model = CustomerAddress
        fields = [
            'id', 'full_name', 'phone', 'address_line1', 'address_line2',
            'city', 'state', 'pincode', 'is_default', 'created_at',
        ]
        read_only_fields = ('id', 'created_at')

    def validate_pincode(self, value):
        value = (value or "").strip()
        if not value.isdigit() or len(value) != 6:
            raise serializers.ValidationError("Pincode must be 6 digits")
        return value
