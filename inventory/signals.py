from django.db.models.signals import post_save
from django.dispatch import receiver

from catalog.models import Product
from .models import Inventory


@receiver(post_save, sender=Product)
def _create_inventory_for_new_product(sender, instance: Product, created, **kwargs):
    # Opening stock arrives through StockLedger.restock so it is recorded as a movement
    if created:
        Inventory.objects.get_or_create(product=instance)
