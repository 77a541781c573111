from django.urls import path

from .views import AdjustStockView, InventoryListView, RestockView, StockMovementListView

urlpatterns = [
    path("", InventoryListView.as_view(), name="inventory-list"),
    path("<uuid:pk>/restock/", RestockView.as_view(), name="inventory-restock"),
    path("<uuid:pk>/adjust/", AdjustStockView.as_view(), name="inventory-adjust"),
    path("<uuid:pk>/movements/", StockMovementListView.as_view(), name="inventory-movements"),
]
