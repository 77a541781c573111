from django.urls import path

from .views import DeviceTokenView, NotificationListView, NotificationMarkAllReadView, NotificationReadView

urlpatterns = [
    path("", NotificationListView.as_view(), name="notification-list"),
    path("devices/", DeviceTokenView.as_view(), name="notification-devices"),
    path("<uuid:pk>/read/", NotificationReadView.as_view(), name="notification-read"),
    path("read-all/", NotificationMarkAllReadView.as_view(), name="notification-read-all"),
]
