from django.urls import path

from .views import (
    CaptureCreateAPIView,
    ComponentDetailAPIView,
    ConnectionCreateAPIView,
    FlowDetailAPIView,
    FlowListAPIView,
    FlowTreeAPIView,
    RouteCapturesAPIView,
    RouteDetailAPIView,
)

urlpatterns = [
    path("captures/", CaptureCreateAPIView.as_view(), name="capture_create"),
    path("routes/<int:route_id>/", RouteDetailAPIView.as_view(), name="route_detail"),
    path("routes/<int:route_id>/captures/", RouteCapturesAPIView.as_view(), name="route_captures"),
    path("connections/", ConnectionCreateAPIView.as_view(), name="connection_create"),
    path("flow-trees/", FlowTreeAPIView.as_view(), name="flow_trees"),
    path("flows/", FlowListAPIView.as_view(), name="flow_list"),
    path("flows/<int:flow_id>/", FlowDetailAPIView.as_view(), name="flow_detail"),
    path("components/<int:component_id>/", ComponentDetailAPIView.as_view(), name="component_detail"),
]
