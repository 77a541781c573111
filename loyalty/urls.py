from django.urls import path

from .views import (
    BalanceView,
    LoyaltyAdjustView,
    LoyaltyHistoryView,
    RedeemableItemListView,
    RedeemView,
    WalletHistoryView,
    WalletTopUpView,
)

urlpatterns = [
    path("", BalanceView.as_view(), name="rewards-balance"),
    path("points/", LoyaltyHistoryView.as_view(), name="rewards-points-history"),
    path("points/adjust/", LoyaltyAdjustView.as_view(), name="rewards-points-adjust"),
    path("wallet/", WalletHistoryView.as_view(), name="rewards-wallet-history"),
    path("wallet/top-up/", WalletTopUpView.as_view(), name="rewards-wallet-topup"),
    path("items/", RedeemableItemListView.as_view(), name="rewards-items"),
    path("items/<uuid:pk>/redeem/", RedeemView.as_view(), name="rewards-redeem"),
]
