from django.urls import path
from .views import *
urlpatterns = [
    path('cart/', CartView.as_view(), name='cart'),
    path('cart/add/', AddToCartView.as_view(), name='cart-add'),
    path('cart/items/<uuid:pk>/', CartItemView.as_view(), name='cart-item'),
    path('cart/checkout/', CheckoutCartView.as_view(), name='cart-checkout'),
    path('pos/', PosSaleView.as_view(), name='pos-sale'),
    path('orders/', ListOrdersView.as_view(), name='order-list'),
    path('orders/<uuid:pk>/', OrderDetailView.as_view(), name='order-detail'),
    path('orders/<uuid:pk>/status/', OrderTransitionView.as_view(), name='order-transition'),
]
