from django.urls import path
from .views import *

urlpatterns = [
    path('products/', CreateProductView.as_view(), name='create-product'),
    path('products/<uuid:pk>/', ProductDetailView.as_view(), name='product-detail'),
    path('products/<uuid:pk>/reviews/', ProductReviewListCreateView.as_view(), name='product-review-list-create'),
    path('products/<uuid:pk>/wishlist/', WishlistItemView.as_view(), name='wishlist-item'),
    path('reviews/<uuid:pk>/', ProductReviewDetailView.as_view(), name='product-review-detail'),
    path('categories/', CreateCategoryView.as_view(), name='create-category'),
    path('wishlist/', WishlistView.as_view(), name='wishlist'),
]
