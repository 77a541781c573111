from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status, permissions
from rest_framework.generics import ListAPIView

from account.models import Customer, CustomerAddress
from core.views import StaffOnlyMixin, StoreErrorMixin
from .models import Order
from .serializers import (
    CartItemCreateSerializer,
    CartItemSerializer,
    CartItemUpdateSerializer,
    CheckoutSerializer,
    OrderSerializer,
    OrderTransitionSerializer,
    PosSaleSerializer,
)
from .services import CartService, CheckoutService, OrderStateMachine, compute_totals


def _cart_payload(user, payment_method=Order.PaymentMethod.CASH):
    items = list(CartService.items(user))
    totals = compute_totals([(i.product.price, i.quantity) for i in items], payment_method=payment_method)
    return {
        "items": CartItemSerializer(items, many=True).data,
        "items_count": sum(i.quantity for i in items),
        "totals": totals.as_dict(),
    }


class CartView(StoreErrorMixin, APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        method = request.query_params.get("payment_method", Order.PaymentMethod.CASH)
        if method not in Order.PaymentMethod.values:
            method = Order.PaymentMethod.CASH
        return Response(_cart_payload(request.user, method))

    def delete(self, request):
        removed = CartService.clear(request.user)
        return Response({"removed": removed}, status=status.HTTP_200_OK)


class AddToCartView(StoreErrorMixin, APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        serializer = CartItemCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        item = CartService.add(request.user, data["product"], data["quantity"], data["size"])
        return Response(
            {
                "message": "Item added successfully",
                "item": CartItemSerializer(item).data,
                **_cart_payload(request.user),
            },
            status=status.HTTP_200_OK,
        )


class CartItemView(StoreErrorMixin, APIView):
    permission_classes = [permissions.IsAuthenticated]

    def patch(self, request, pk):
        serializer = CartItemUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        item = CartService.set_quantity(request.user, pk, serializer.validated_data["quantity"])
        return Response(CartItemSerializer(item).data, status=status.HTTP_200_OK)

    def delete(self, request, pk):
        CartService.remove(request.user, pk)
        return Response(status=status.HTTP_204_NO_CONTENT)


class CheckoutCartView(StoreErrorMixin, APIView):
    """
    Create an order from the user's cart.

    e.g. {"address_id": "0b9d6f0e-2f44-4a5e-9d55-5a0f0e7b8c11", "payment_method": "upi"}
    """
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        serializer = CheckoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        address = data.get("shipping_address", "")
        if data.get("address_id"):
            address = CustomerAddress.objects.filter(pk=data["address_id"], user=request.user).first()
            if not address:
                return Response({"detail": "Address not found"}, status=status.HTTP_404_NOT_FOUND)

        order = CheckoutService.checkout(
            request.user,
            address,
            data["payment_method"],
            notes=data["notes"],
        )
        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)


class PosSaleView(StaffOnlyMixin, APIView):
    def post(self, request):
        serializer = PosSaleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        customer = None
        if data.get("customer_id"):
            customer = Customer.objects.filter(pk=data["customer_id"]).first()
            if not customer:
                return Response({"detail": "Customer not found"}, status=status.HTTP_404_NOT_FOUND)

        order = CheckoutService.pos_sale(
            request.user,
            data["items"],
            customer=customer,
            discount_percent=data["discount_percent"],
            payment_method=data["payment_method"],
        )
        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)


class ListOrdersView(StoreErrorMixin, ListAPIView):
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = OrderSerializer

    def get_queryset(self):
        qs = Order.objects.prefetch_related("items", "status_history").order_by("-created_at")
        if not self.request.user.is_store_staff:
            qs = qs.filter(user=self.request.user)
        wanted = self.request.query_params.get("status")
        if wanted:
            qs = qs.filter(status=wanted)
        return qs


class OrderDetailView(StoreErrorMixin, APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, pk):
        qs = Order.objects.prefetch_related("items", "status_history")
        if not request.user.is_store_staff:
            qs = qs.filter(user=request.user)
        order = qs.filter(pk=pk).first()
        if not order:
            return Response({"detail": "Order not found"}, status=status.HTTP_404_NOT_FOUND)
        return Response(OrderSerializer(order).data)


class OrderTransitionView(StaffOnlyMixin, APIView):
    def post(self, request, pk):
        order = Order.objects.filter(pk=pk).first()
        if not order:
            return Response({"detail": "Order not found"}, status=status.HTTP_404_NOT_FOUND)
        serializer = OrderTransitionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = OrderStateMachine.transition(
            order,
            serializer.validated_data["status"],
            request.user,
            notes=serializer.validated_data["notes"],
        )
        return Response(
            {
                "order_id": str(order.id),
                "status": order.status,
                "payment_status": order.payment_status,
                "allowed_next": sorted(OrderStateMachine.allowed(order.status)),
            },
            status=status.HTTP_200_OK,
        )
