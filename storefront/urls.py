from django.urls import path

from . import views


urlpatterns = [
    path("api/payment-providers/", views.PaymentProviderListView.as_view(), name="payment-providers"),
    path("api/store/orders/<int:pk>/status/", views.OrderStatusView.as_view(), name="store-order-status"),
    path("api/store/<slug:slug>/", views.PublicStoreView.as_view(), name="store-public"),
    path("api/store/<slug:slug>/products/", views.PublicProductListView.as_view(), name="store-products"),
    path(
        "api/store/<slug:slug>/products/<slug:product_slug>/",
        views.PublicProductDetailView.as_view(),
        name="store-product-detail",
    ),
    path("api/store/<slug:slug>/categories/", views.PublicCategoryListView.as_view(), name="store-categories"),
    path("api/store/<slug:slug>/payment-info/", views.StorePaymentInfoView.as_view(), name="store-payment-info"),
    path("api/store/<slug:slug>/checkout/", views.CheckoutView.as_view(), name="store-checkout"),
    path(
        "api/store/<slug:slug>/orders/<str:order_number>/",
        views.OrderLookupView.as_view(),
        name="store-order-lookup",
    ),
    path(
        "store/<slug:slug>/payment/callback",
        views.PaymentCallbackView.as_view(),
        name="store-payment-callback",
    ),
    path("api/webhooks/stripe/", views.stripe_webhook, name="stripe_webhook"),
    path("api/webhooks/flutterwave/", views.flutterwave_webhook, name="flutterwave_webhook"),
]
