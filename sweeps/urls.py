from django.urls import path

from .views import SweepCreateAPIView, SweepStatusAPIView

urlpatterns = [
    path("", SweepCreateAPIView.as_view(), name="sweep_create"),
    path("status/", SweepStatusAPIView.as_view(), name="sweep_status"),
]
