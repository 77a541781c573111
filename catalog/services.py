from core.exceptions import NotFound, require_user
from .models import Product, WishlistItem


class WishlistService:

    @staticmethod
    def add(user, product: Product) -> WishlistItem:
        require_user(user)
        if product.status == Product.Status.ARCHIVED:
            raise NotFound("Product is no longer listed")
        item, _ = WishlistItem.objects.get_or_create(user=user, product=product)
        return item

    @staticmethod
    def remove(user, product: Product) -> None:
        require_user(user)
        WishlistItem.objects.filter(user=user, product=product).delete()

    @staticmethod
    def items(user):
        require_user(user)
        return (
            WishlistItem.objects.filter(user=user)
            .select_related("product__inventory", "product__category")
            .order_by("-created_at")
        )
