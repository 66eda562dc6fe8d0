import logging

from django.db.models import Count, Prefetch
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from screens.flow_service import flow_tree_payload
from screens.models import Capture, Component, Connection, Route

from .models import Product
from .serializers import ProductSerializer

logger = logging.getLogger(__name__)


class ProductListCreateAPIView(APIView):

    def get(self, request):
        products = Product.active.order_by("-created_on")
        return Response({"products": ProductSerializer(products, many=True).data})

    def post(self, request):
        serializer = ProductSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        product = serializer.save()

        logger.info("Product created id=%s name=%s auth_state=%s", product.id, product.name, product.auth_state)

        return Response(
            {"success": True, "product": ProductSerializer(product).data},
            status=status.HTTP_201_CREATED,
        )


class ProductDetailAPIView(APIView):

    def get(self, request, product_id):
        product = get_object_or_404(Product, pk=product_id)
        return Response({"product": ProductSerializer(product).data})

    def delete(self, request, product_id):
        product = get_object_or_404(Product, pk=product_id)
        # cascades to routes, captures, connections, flows and components
        product.delete()
        logger.info("Product deleted id=%s", product_id)
        return Response({"success": True, "message": "Product deleted successfully"})


class ProductDashboardAPIView(APIView):
    """
    GET /api/products/<id>/dashboard/

    Everything the dashboard renders for one product: screens with their
    capture history, navigation edges, components, change counters and the
    reconstructed flow trees.
    """

    def get(self, request, product_id):
        product = get_object_or_404(Product, pk=product_id)

        routes = (
            Route.objects.filter(product=product, status="a")
            .order_by("created_on", "id")
            .prefetch_related(
                Prefetch("captures", queryset=Capture.objects.order_by("-captured_at", "-id"))
            )
        )
        route_rows = []
        for route in routes:
            route_rows.append(
                {
                    "id": route.id,
                    "name": route.name,
                    "path": route.path,
                    "flow_name": route.flow_name,
                    "product_id": route.product_id,
                    "captures": [
                        {
                            "screenshot_url": c.screenshot_url,
                            "captured_at": c.captured_at,
                            "has_changes": c.has_changes,
                            "diff_percentage": c.diff_percentage,
                            "change_summary": c.change_summary,
                        }
                        for c in route.captures.all()
                    ],
                }
            )

        connections = list(
            Connection.objects.filter(product=product)
            .order_by("id")
            .values("source_route_id", "destination_route_id")
        )

        components = [
            {
                "id": comp.id,
                "name": comp.name,
                "image_url": comp.image_url,
                "instance_count": comp.instance_count,
                "screen_count": comp.screen_count,
            }
            for comp in Component.objects.filter(product=product)
            .annotate(
                instance_count=Count("instances", distinct=True),
                screen_count=Count("instances__route", distinct=True),
            )
            .order_by("-created_on")
        ]

        product_captures = Capture.objects.filter(route__product=product)
        latest_capture = product_captures.order_by("-captured_at").values_list("captured_at", flat=True).first()
        changes_count = product_captures.filter(has_changes=True).count()

        flow_names = []
        for row in route_rows:
            if row["flow_name"] and row["flow_name"] not in flow_names:
                flow_names.append(row["flow_name"])

        return Response(
            {
                "product": ProductSerializer(product).data,
                "routes": route_rows,
                "connections": connections,
                "components": components,
                "latest_capture_at": latest_capture,
                "changes_count": changes_count,
                "flows": flow_names,
                **flow_tree_payload(product.id),
            }
        )
