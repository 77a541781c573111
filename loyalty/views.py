from rest_framework import permissions, status
from rest_framework.generics import ListAPIView
from rest_framework.response import Response
from rest_framework.views import APIView

from account.models import Customer
from account.services import CustomerService
from core.views import StaffOnlyMixin, StoreErrorMixin
from .models import RedeemableItem
from .serializers import (
    LoyaltyAdjustSerializer,
    LoyaltyTransactionSerializer,
    RedeemableItemSerializer,
    TopUpSerializer,
    WalletTransactionSerializer,
)
from .services import LoyaltyLedger, WalletLedger, redeem


class BalanceView(StoreErrorMixin, APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        customer = CustomerService.for_user(request.user)
        return Response(
            {
                "loyalty_points": customer.loyalty_points,
                "loyalty_tier": customer.loyalty_tier,
                "wallet_balance": customer.wallet_balance,
                "recent_points": LoyaltyTransactionSerializer(LoyaltyLedger.history(customer)[:10], many=True).data,
                "recent_wallet": WalletTransactionSerializer(WalletLedger.history(customer)[:10], many=True).data,
            }
        )


class LoyaltyHistoryView(StoreErrorMixin, ListAPIView):
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = LoyaltyTransactionSerializer

    def get_queryset(self):
        return LoyaltyLedger.history(CustomerService.for_user(self.request.user)).select_related("order")


class WalletHistoryView(StoreErrorMixin, ListAPIView):
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = WalletTransactionSerializer

    def get_queryset(self):
        return WalletLedger.history(CustomerService.for_user(self.request.user))


class WalletTopUpView(StoreErrorMixin, APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        serializer = TopUpSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        entry = WalletLedger.top_up(request.user, serializer.validated_data["amount"])
        return Response(WalletTransactionSerializer(entry).data, status=status.HTTP_201_CREATED)


class RedeemableItemListView(ListAPIView):
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = RedeemableItemSerializer

    def get_queryset(self):
        return RedeemableItem.objects.filter(is_active=True).order_by("points_required")


class RedeemView(StoreErrorMixin, APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, pk):
        item = RedeemableItem.objects.filter(pk=pk).first()
        if not item:
            return Response({"detail": "Reward not found"}, status=status.HTTP_404_NOT_FOUND)
        spent, credited = redeem(request.user, item)
        return Response(
            {
                "points_spent": spent.points,
                "loyalty_points": spent.balance_after,
                "wallet_credit": credited.amount,
                "wallet_balance": credited.balance_after,
            },
            status=status.HTTP_201_CREATED,
        )


class LoyaltyAdjustView(StaffOnlyMixin, APIView):
    def post(self, request):
        serializer = LoyaltyAdjustSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        customer = Customer.objects.filter(pk=serializer.validated_data["customer_id"]).first()
        if not customer:
            return Response({"detail": "Customer not found"}, status=status.HTTP_404_NOT_FOUND)
        entry = LoyaltyLedger.adjust(
            customer,
            serializer.validated_data["points"],
            request.user,
            description=serializer.validated_data["description"],
        )
        return Response(LoyaltyTransactionSerializer(entry).data, status=status.HTTP_201_CREATED)
