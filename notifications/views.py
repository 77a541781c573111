from rest_framework import permissions, status
from rest_framework.generics import ListAPIView
from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response
from rest_framework.views import APIView

from core.views import StoreErrorMixin
from .serializers import DeviceTokenDeactivateSerializer, DeviceTokenSerializer, NotificationSerializer
from .services import NotificationService


class NotificationPagination(PageNumberPagination):
    page_size = 20
    page_size_query_param = "page_size"
    max_page_size = 100


class DeviceTokenView(StoreErrorMixin, APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        serializer = DeviceTokenSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        device = NotificationService.register_device(
            request.user,
            serializer.validated_data["token"],
            serializer.validated_data["device_type"],
        )
        return Response(DeviceTokenSerializer(device).data, status=status.HTTP_200_OK)

    def delete(self, request):
        serializer = DeviceTokenDeactivateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        deactivated = NotificationService.deactivate_devices(request.user, serializer.validated_data["token"])
        return Response({"deactivated": deactivated}, status=status.HTTP_200_OK)


class NotificationListView(StoreErrorMixin, ListAPIView):
    """Inbox of the signed-in user. ``?unread=true`` and ``?type=`` narrow it down."""

    permission_classes = [permissions.IsAuthenticated]
    serializer_class = NotificationSerializer
    pagination_class = NotificationPagination

    def get_queryset(self):
        params = self.request.query_params
        return NotificationService.inbox(
            self.request.user,
            unread_only=params.get("unread") in {"1", "true"},
            notification_type=params.get("type", ""),
        )

    def list(self, request, *args, **kwargs):
        response = super().list(request, *args, **kwargs)
        response.data["unread_count"] = NotificationService.unread_count(request.user)
        return response


class NotificationReadView(StoreErrorMixin, APIView):
    permission_classes = [permissions.IsAuthenticated]

    def patch(self, request, pk):
        notification = NotificationService.mark_read(request.user, pk)
        return Response(NotificationSerializer(notification).data)


class NotificationMarkAllReadView(StoreErrorMixin, APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        return Response({"updated": NotificationService.mark_all_read(request.user)}, status=status.HTTP_200_OK)
