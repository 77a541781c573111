from django.contrib.auth import get_user_model
from rest_framework import permissions, status
from rest_framework.generics import ListCreateAPIView
from rest_framework.response import Response
from rest_framework.views import APIView

from core.views import StaffOnlyMixin, StoreErrorMixin
from .models import CustomOrder
from .serializers import (
    AssignSerializer,
    CustomOrderImageSerializer,
    CustomOrderMessageSerializer,
    CustomOrderSerializer,
    CustomOrderTransitionSerializer,
    PriceSerializer,
)
from .services import CustomOrderService, allowed_next

User = get_user_model()


class CustomOrderListCreateView(StoreErrorMixin, ListCreateAPIView):
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = CustomOrderSerializer

    def get_queryset(self):
        qs = CustomOrderService.visible_to(self.request.user).prefetch_related("images", "status_history")
        wanted = self.request.query_params.get("status")
        if wanted:
            qs = qs.filter(status=wanted)
        return qs.order_by("-created_at")

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        order = CustomOrderService.submit(request.user, **data)
        return Response(self.get_serializer(order).data, status=status.HTTP_201_CREATED)


class CustomOrderDetailView(StoreErrorMixin, APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, pk):
        order = CustomOrderService.get_for(request.user, pk)
        data = CustomOrderSerializer(order).data
        if request.user.is_store_staff:
            data["allowed_next"] = sorted(allowed_next(order.status))
        return Response(data)


class CustomOrderTransitionView(StaffOnlyMixin, APIView):
    def post(self, request, pk):
        order = CustomOrderService.get_for(request.user, pk)
        serializer = CustomOrderTransitionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        order = CustomOrderService.transition(
            order,
            data["status"],
            request.user,
            notes=data["notes"],
            override=data["override"],
            final_price=data.get("final_price"),
        )
        return Response(CustomOrderSerializer(order).data, status=status.HTTP_200_OK)


class CustomOrderPriceView(StaffOnlyMixin, APIView):
    def post(self, request, pk):
        order = CustomOrderService.get_for(request.user, pk)
        serializer = PriceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        if "estimated_price" in data:
            order = CustomOrderService.set_estimated_price(order, data["estimated_price"], request.user)
        if "final_price" in data:
            order = CustomOrderService.set_final_price(order, data["final_price"], request.user)
        return Response(
            {
                "id": str(order.id),
                "estimated_price": order.estimated_price,
                "final_price": order.final_price,
            },
            status=status.HTTP_200_OK,
        )


class CustomOrderAssignView(StaffOnlyMixin, APIView):
    def post(self, request, pk):
        order = CustomOrderService.get_for(request.user, pk)
        serializer = AssignSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        staff = User.objects.filter(pk=serializer.validated_data["staff_id"]).first()
        if not staff:
            return Response({"detail": "Staff member not found"}, status=status.HTTP_404_NOT_FOUND)
        order = CustomOrderService.assign(
            order,
            staff,
            request.user,
            estimated_completion_date=serializer.validated_data.get("estimated_completion_date"),
        )
        return Response(
            {
                "id": str(order.id),
                "assigned_to": str(order.assigned_to_id),
                "estimated_completion_date": order.estimated_completion_date,
            },
            status=status.HTTP_200_OK,
        )


class CustomOrderMessagesView(StoreErrorMixin, APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, pk):
        order = CustomOrderService.get_for(request.user, pk)
        messages = CustomOrderService.messages_for(order, request.user)
        return Response(CustomOrderMessageSerializer(messages, many=True).data)

    def post(self, request, pk):
        order = CustomOrderService.get_for(request.user, pk)
        serializer = CustomOrderMessageSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        message = CustomOrderService.post_message(
            order,
            request.user,
            serializer.validated_data["message"],
            is_internal=serializer.validated_data.get("is_internal", False),
        )
        return Response(CustomOrderMessageSerializer(message).data, status=status.HTTP_201_CREATED)


class CustomOrderImagesView(StoreErrorMixin, APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, pk):
        order = CustomOrderService.get_for(request.user, pk)
        serializer = CustomOrderImageSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        image = CustomOrderService.add_image(
            order,
            request.user,
            serializer.validated_data["image_url"],
            caption=serializer.validated_data.get("caption", ""),
        )
        return Response(CustomOrderImageSerializer(image).data, status=status.HTTP_201_CREATED)
