from rest_framework import status
from rest_framework.generics import ListAPIView
from rest_framework.response import Response
from rest_framework.views import APIView

from catalog.models import Product
from core.views import StaffOnlyMixin
from .models import Inventory, StockMovement
from .serializers import AdjustStockSerializer, InventorySerializer, RestockSerializer, StockMovementSerializer
from .services import StockLedger


class InventoryListView(StaffOnlyMixin, ListAPIView):
    serializer_class = InventorySerializer

    def get_queryset(self):
        qs = Inventory.objects.select_related("product").order_by("product__name")
        if self.request.query_params.get("low") in {"1", "true"}:
            return StockLedger.low_stock()
        return qs


class RestockView(StaffOnlyMixin, APIView):
    def post(self, request, pk):
        product = Product.objects.filter(pk=pk).first()
        if not product:
            return Response({"detail": "Product not found"}, status=status.HTTP_404_NOT_FOUND)
        serializer = RestockSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        inventory = StockLedger.restock(
            product,
            serializer.validated_data["quantity"],
            actor=request.user,
            notes=serializer.validated_data["notes"],
        )
        return Response(InventorySerializer(inventory).data, status=status.HTTP_200_OK)


class AdjustStockView(StaffOnlyMixin, APIView):
    def post(self, request, pk):
        product = Product.objects.filter(pk=pk).first()
        if not product:
            return Response({"detail": "Product not found"}, status=status.HTTP_404_NOT_FOUND)
        serializer = AdjustStockSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        inventory = StockLedger.adjust(
            product,
            serializer.validated_data["delta"],
            actor=request.user,
            notes=serializer.validated_data["notes"],
        )
        return Response(InventorySerializer(inventory).data, status=status.HTTP_200_OK)


class StockMovementListView(StaffOnlyMixin, ListAPIView):
    serializer_class = StockMovementSerializer

    def get_queryset(self):
        return StockMovement.objects.filter(product_id=self.kwargs["pk"]).order_by("-created_at")
