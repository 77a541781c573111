from django.contrib import admin

from .models import CartItem, Order, OrderItem, OrderStatusHistory


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    can_delete = False
    readonly_fields = ("product", "product_name", "sku", "size", "unit_price", "quantity", "line_total")


class OrderStatusHistoryInline(admin.TabularInline):
    model = OrderStatusHistory
    extra = 0
    can_delete = False
    readonly_fields = ("from_status", "to_status", "notes", "changed_by", "created_at")


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("order_number", "customer_name", "source", "status", "payment_status", "total_amount", "created_at")
    list_filter = ("status", "payment_status", "source", "payment_method")
    search_fields = ("order_number", "customer_name", "customer_phone", "customer_email")
    # Status changes go through OrderStateMachine
    readonly_fields = [f.name for f in Order._meta.fields if f.name != "notes"]
    inlines = [OrderItemInline, OrderStatusHistoryInline]


admin.site.register(CartItem)
