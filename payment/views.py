from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from core.views import StaffOnlyMixin
from order.models import Order
from .models import Payment
from .serializers import PaymentSerializer, RecordPaymentSerializer
from .services import PaymentService


class OrderPaymentsView(StaffOnlyMixin, APIView):
    """List the payments of an order or record a new one (cash collected, UPI received...)."""

    def get(self, request, pk):
        order = Order.objects.filter(pk=pk).first()
        if not order:
            return Response({"detail": "Order not found"}, status=status.HTTP_404_NOT_FOUND)
        payments = Payment.objects.filter(order=order).order_by("created_at")
        return Response(
            {
                "order_id": str(order.id),
                "payment_status": order.payment_status,
                "total_amount": order.total_amount,
                "net_paid": PaymentService.net_paid(order),
                "payments": PaymentSerializer(payments, many=True).data,
            }
        )

    def post(self, request, pk):
        order = Order.objects.filter(pk=pk).first()
        if not order:
            return Response({"detail": "Order not found"}, status=status.HTTP_404_NOT_FOUND)
        serializer = RecordPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        payment = PaymentService.record_payment(
            order,
            data["amount"],
            data["method"],
            actor=request.user,
            transaction_id=data["transaction_id"],
            notes=data["notes"],
        )
        return Response(
            {
                "payment": PaymentSerializer(payment).data,
                "payment_status": order.payment_status,
            },
            status=status.HTTP_201_CREATED,
        )
