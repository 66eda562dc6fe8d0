import logging

from django.db import transaction
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from products.models import Product

from .capture_differ import ImageDecodeError
from .capture_service import record_capture
from .flow_service import flow_hierarchy_payload, flow_tree_payload
from .models import Capture, Component, Connection, Flow, Route
from .serializers import (
    CaptureSerializer,
    CaptureUploadSerializer,
    ConnectionSerializer,
    RouteSerializer,
)

logger = logging.getLogger(__name__)


def _normalize_path(value: str) -> str:
    raw = str(value or "").strip()
    if not raw:
        return "/"
    if raw.startswith("/"):
        return raw
    return f"/{raw}"


def _product_id_param(request):
    raw = request.query_params.get("product_id") or request.query_params.get("productId")
    if not raw:
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


class CaptureCreateAPIView(APIView):
    """
    POST /api/screens/captures/
    Body: route_id | (product_id, path, name?, flow_name?)
          screenshot (multipart file) | screenshot_base64
    """

    def post(self, request):
        serializer = CaptureUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        if data.get("route_id"):
            route = get_object_or_404(Route, pk=data["route_id"])
        else:
            product = get_object_or_404(Product, pk=data["product_id"])
            path = _normalize_path(data["path"])
            route, created = Route.objects.get_or_create(
                product=product,
                path=path,
                defaults={
                    "name": data.get("name") or path,
                    "flow_name": data.get("flow_name") or None,
                },
            )
            if created:
                logger.info("Discovered route product=%s path=%s", product.id, path)

        try:
            capture = record_capture(
                route,
                data["screenshot_bytes"],
                detect_changes_only=data["detect_changes_only"],
            )
        except ImageDecodeError as exc:
            return Response({"error": f"Invalid screenshot: {exc}"}, status=status.HTTP_400_BAD_REQUEST)

        if capture is None:
            return Response(
                {"status": "skipped", "route_id": route.id, "has_changes": False},
                status=status.HTTP_200_OK,
            )

        return Response(
            {"status": "stored", "route_id": route.id, "capture": CaptureSerializer(capture).data},
            status=status.HTTP_201_CREATED,
        )


class RouteCapturesAPIView(APIView):
    def get(self, request, route_id):
        route = get_object_or_404(Route, pk=route_id)
        captures = route.captures.order_by("-captured_at", "-id")
        return Response(
            {
                "route": RouteSerializer(route).data,
                "captures": CaptureSerializer(captures, many=True).data,
            }
        )


class RouteDetailAPIView(APIView):
    def delete(self, request, route_id):
        route = get_object_or_404(Route, pk=route_id)
        with transaction.atomic():
            deleted_captures, _ = Capture.objects.filter(route=route).delete()
            route.delete()
        logger.info("Deleted route=%s captures=%s", route_id, deleted_captures)
        return Response({"success": True})


class ConnectionCreateAPIView(APIView):
    def post(self, request):
        serializer = ConnectionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        connection, created = Connection.objects.get_or_create(
            source_route=data["source_route"],
            destination_route=data["destination_route"],
            defaults={"product_id": data["source_route"].product_id},
        )
        return Response(
            ConnectionSerializer(connection).data,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )


class FlowTreeAPIView(APIView):
    """
    GET /api/screens/flow-trees/?product_id=<id>
    """

    def get(self, request):
        product_id = _product_id_param(request)
        if product_id is None:
            return Response({"error": "Product ID is required"}, status=status.HTTP_400_BAD_REQUEST)
        get_object_or_404(Product, pk=product_id)
        return Response({"success": True, **flow_tree_payload(product_id)})


class FlowListAPIView(APIView):
    """
    GET /api/screens/flows/?product_id=<id>
    """

    def get(self, request):
        product_id = _product_id_param(request)
        if product_id is None:
            return Response({"error": "Product ID is required"}, status=status.HTTP_400_BAD_REQUEST)
        return Response({"success": True, "flows": flow_hierarchy_payload(product_id)})


class FlowDetailAPIView(APIView):
    def delete(self, request, flow_id):
        flow = get_object_or_404(Flow, pk=flow_id)
        with transaction.atomic():
            route_ids = list(flow.routes.values_list("id", flat=True))
            if route_ids:
                Capture.objects.filter(route_id__in=route_ids).delete()
                Route.objects.filter(id__in=route_ids).delete()
            flow.delete()
        logger.info("Deleted flow=%s routes=%s", flow_id, len(route_ids))
        return Response({"success": True})


class ComponentDetailAPIView(APIView):
    def delete(self, request, component_id):
        component = get_object_or_404(Component, pk=component_id)
        with transaction.atomic():
            component.instances.all().delete()
            component.delete()
        return Response({"success": True})
