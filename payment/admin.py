from django.contrib import admin

from .models import Payment


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
	list_display = ("id", "order", "kind", "amount", "method", "transaction_id", "created_at")
	list_filter = ("kind", "method")
	search_fields = ("transaction_id", "order__order_number")

	def has_change_permission(self, request, obj=None):
		return False
