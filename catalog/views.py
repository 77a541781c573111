from django.db import transaction
from rest_framework import permissions
from rest_framework.generics import ListCreateAPIView, RetrieveUpdateDestroyAPIView, ListAPIView
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from rest_framework.exceptions import PermissionDenied

from core.exceptions import require_staff
from core.views import StoreErrorMixin
from .models import Category, Product, ProductReview
from .serializers import CategorySerializer, ProductReviewSerializer, ProductSerializer, WishlistItemSerializer
from .services import WishlistService


class StaffWriteMixin(StoreErrorMixin):
    """Anyone signed in may read; writes are for store staff."""

    def initial(self, request, *args, **kwargs):
        super().initial(request, *args, **kwargs)
        if request.method not in permissions.SAFE_METHODS:
            require_staff(request.user)


class CreateProductView(StaffWriteMixin, ListCreateAPIView):
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = ProductSerializer

    def get_queryset(self):
        qs = Product.objects.select_related("category", "inventory").order_by("name")
        if not self.request.user.is_store_staff:
            qs = qs.filter(status=Product.Status.ACTIVE)
        category = self.request.query_params.get("category")
        if category:
            qs = qs.filter(category__slug=category)
        if self.request.query_params.get("featured") in {"1", "true"}:
            qs = qs.filter(is_featured=True)
        return qs

    def perform_create(self, serializer):
        # Inventory row is created by the post_save signal in the same transaction
        with transaction.atomic():
            serializer.save()


class ProductDetailView(StaffWriteMixin, RetrieveUpdateDestroyAPIView):
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = ProductSerializer

    def get_queryset(self):
        qs = Product.objects.select_related("category", "inventory")
        if not self.request.user.is_store_staff:
            qs = qs.filter(status=Product.Status.ACTIVE)
        return qs

    def perform_destroy(self, instance):
        # Products referenced by orders stay on record
        instance.status = Product.Status.ARCHIVED
        instance.save(update_fields=["status", "updated_at"])


class CreateCategoryView(StaffWriteMixin, ListCreateAPIView):
    permission_classes = [permissions.IsAuthenticated]
    queryset = Category.objects.all().order_by("name")
    serializer_class = CategorySerializer


class ProductReviewListCreateView(ListCreateAPIView):
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = ProductReviewSerializer

    def get_queryset(self):
        product_id = self.kwargs["pk"]
        return ProductReview.objects.filter(product_id=product_id).select_related("user", "product").order_by("-created_at")

    def perform_create(self, serializer):
        product = Product.objects.filter(id=self.kwargs["pk"], status=Product.Status.ACTIVE).first()
        if not product:
            raise PermissionDenied("Product not found.")
        if ProductReview.objects.filter(product=product, user=self.request.user).exists():
            raise PermissionDenied("You have already reviewed this product.")
        serializer.save(product=product, user=self.request.user)


class ProductReviewDetailView(RetrieveUpdateDestroyAPIView):
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = ProductReviewSerializer
    queryset = ProductReview.objects.select_related("user", "product").all()

    def perform_update(self, serializer):
        if serializer.instance.user_id != self.request.user.id:
            raise PermissionDenied("You can only update your own review.")
        serializer.save()

    def perform_destroy(self, instance):
        if instance.user_id != self.request.user.id and not self.request.user.is_store_staff:
            raise PermissionDenied("You can only delete your own review.")
        instance.delete()


class WishlistView(StoreErrorMixin, ListAPIView):
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = WishlistItemSerializer

    def get_queryset(self):
        return WishlistService.items(self.request.user)


class WishlistItemView(StoreErrorMixin, APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, pk):
        product = Product.objects.filter(pk=pk).first()
        if not product:
            return Response({"detail": "Product not found"}, status=status.HTTP_404_NOT_FOUND)
        item = WishlistService.add(request.user, product)
        return Response(WishlistItemSerializer(item, context={"request": request}).data, status=status.HTTP_201_CREATED)

    def delete(self, request, pk):
        product = Product.objects.filter(pk=pk).first()
        if not product:
            return Response({"detail": "Product not found"}, status=status.HTTP_404_NOT_FOUND)
        WishlistService.remove(request.user, product)
        return Response(status=status.HTTP_204_NO_CONTENT)
