
from django.contrib import admin
from django.urls import path, include



urlpatterns = [
    path("admin/", admin.site.urls),
    path('auth/', include('account.urls')),
    path('catalog/', include('catalog.urls')),
    path('inventory/', include('inventory.urls')),
    path('order/', include('order.urls')),
    path('payment/', include('payment.urls')),
    path('custom-orders/', include('custom_orders.urls')),
    path('rewards/', include('loyalty.urls')),
    path('api/notifications/', include('notifications.urls')),
]
