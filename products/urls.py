from django.urls import path

from .views import (
    ProductDashboardAPIView,
    ProductDetailAPIView,
    ProductListCreateAPIView,
)

urlpatterns = [
    path("", ProductListCreateAPIView.as_view(), name="product_list_create"),
    path("<int:product_id>/", ProductDetailAPIView.as_view(), name="product_detail"),
    path("<int:product_id>/dashboard/", ProductDashboardAPIView.as_view(), name="product_dashboard"),
]
