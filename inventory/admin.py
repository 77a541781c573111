from django.contrib import admin

from .models import Inventory, StockMovement, StockReservation


@admin.register(Inventory)
class InventoryAdmin(admin.ModelAdmin):
    list_display = ("product", "quantity", "reserved_quantity", "location", "last_restocked_at")
    search_fields = ("product__name", "product__sku")
    # Counts change only through StockLedger so every change has a movement
    readonly_fields = ("quantity", "reserved_quantity", "last_restocked_at")


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = ("product", "movement_type", "quantity_change", "reference_type", "reference_id", "created_at")
    list_filter = ("movement_type",)

    def has_change_permission(self, request, obj=None):
        return False


admin.site.register(StockReservation)
