from django.urls import path

from .views import (
    CustomOrderAssignView,
    CustomOrderDetailView,
    CustomOrderImagesView,
    CustomOrderListCreateView,
    CustomOrderMessagesView,
    CustomOrderPriceView,
    CustomOrderTransitionView,
)

urlpatterns = [
    path("", CustomOrderListCreateView.as_view(), name="custom-order-list-create"),
    path("<uuid:pk>/", CustomOrderDetailView.as_view(), name="custom-order-detail"),
    path("<uuid:pk>/status/", CustomOrderTransitionView.as_view(), name="custom-order-transition"),
    path("<uuid:pk>/price/", CustomOrderPriceView.as_view(), name="custom-order-price"),
    path("<uuid:pk>/assign/", CustomOrderAssignView.as_view(), name="custom-order-assign"),
    path("<uuid:pk>/messages/", CustomOrderMessagesView.as_view(), name="custom-order-messages"),
    path("<uuid:pk>/images/", CustomOrderImagesView.as_view(), name="custom-order-images"),
]
