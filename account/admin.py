from django.contrib import admin

from .models import Customer, CustomerAddress, User


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ("id", "email", "full_name", "role", "is_active", "created_at")
    search_fields = ("email", "full_name", "phone_number")
    list_filter = ("role", "is_active")


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "phone", "loyalty_points", "loyalty_tier", "wallet_balance", "total_orders")
    search_fields = ("name", "phone", "email")
    list_filter = ("customer_type", "loyalty_tier")
    # Balances move only through the loyalty ledgers
    readonly_fields = ("loyalty_points", "loyalty_tier", "wallet_balance", "total_orders", "total_spent")


admin.site.register(CustomerAddress)
