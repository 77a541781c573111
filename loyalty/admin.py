from django.contrib import admin

from .models import LoyaltyTransaction, RedeemableItem, WalletTransaction


@admin.register(RedeemableItem)
class RedeemableItemAdmin(admin.ModelAdmin):
    list_display = ("name", "points_required", "wallet_credit", "is_active")
    list_filter = ("is_active",)


@admin.register(LoyaltyTransaction)
class LoyaltyTransactionAdmin(admin.ModelAdmin):
    list_display = ("customer", "transaction_type", "points", "balance_after", "created_at")
    list_filter = ("transaction_type",)
    search_fields = ("customer__name", "customer__phone")

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(WalletTransaction)
class WalletTransactionAdmin(admin.ModelAdmin):
    list_display = ("customer", "transaction_type", "amount", "balance_after", "reference_type", "created_at")
    list_filter = ("transaction_type", "reference_type")
    search_fields = ("customer__name", "reference_id")

    def has_change_permission(self, request, obj=None):
        return False
