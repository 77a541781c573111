from django.urls import path
from .views import OrderPaymentsView

urlpatterns = [
    path("orders/<uuid:pk>/", OrderPaymentsView.as_view(), name="order-payments"),
]
