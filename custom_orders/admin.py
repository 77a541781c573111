from django.contrib import admin

from .models import CustomOrder, CustomOrderImage, CustomOrderMessage, CustomOrderStatusHistory


class CustomOrderImageInline(admin.TabularInline):
    model = CustomOrderImage
    extra = 0


class CustomOrderStatusHistoryInline(admin.TabularInline):
    model = CustomOrderStatusHistory
    extra = 0
    can_delete = False
    readonly_fields = ("status", "notes", "changed_by", "is_override", "created_at")


@admin.register(CustomOrder)
class CustomOrderAdmin(admin.ModelAdmin):
    list_display = ("order_number", "product_type", "status", "budget_range", "assigned_to", "created_at")
    list_filter = ("status", "budget_range", "expected_delivery_timeline")
    search_fields = ("order_number", "product_type", "customer__name", "user__email")
    readonly_fields = ("order_number", "status", "final_price", "submitted_at", "quote_accepted_at", "delivered_at")
    inlines = [CustomOrderImageInline, CustomOrderStatusHistoryInline]


admin.site.register(CustomOrderMessage)
