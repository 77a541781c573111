from django.contrib import admin

from .models import Category, Product, ProductReview, WishlistItem


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("name", "sku", "category", "price", "status", "is_featured")
    search_fields = ("name", "sku", "barcode")
    list_filter = ("status", "category", "is_featured")


admin.site.register(Category)
admin.site.register(ProductReview)
admin.site.register(WishlistItem)
