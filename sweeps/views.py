import logging

from django.db import transaction
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from products.models import Product

from .models import Sweep
from .runner import launch_sweep
from .serializers import SweepCreateSerializer, SweepSerializer

logger = logging.getLogger(__name__)


class SweepCreateAPIView(APIView):
    """
    POST /api/sweeps/
    Body: product_id, capture_mode (all|specific), selected_flow, detect_changes_only
    """

    def post(self, request):
        serializer = SweepCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        with transaction.atomic():
            # serialises concurrent starts for the same product
            Product.objects.select_for_update().get(pk=data["product"].pk)
            running = Sweep.objects.filter(
                product=data["product"],
                sweep_status__in=[Sweep.STATE_PENDING, Sweep.STATE_RUNNING],
            ).first()
            if running:
                return Response(
                    {"success": False, "error": "A sweep is already running", "sweep": SweepSerializer(running).data},
                    status=status.HTTP_409_CONFLICT,
                )
            sweep = Sweep.objects.create(**data)

        launch_sweep(sweep)
        logger.info("Sweep %s queued product=%s mode=%s", sweep.id, sweep.product_id, sweep.capture_mode)

        return Response(
            {"success": True, "message": "Sweep started", "sweep": SweepSerializer(sweep).data},
            status=status.HTTP_202_ACCEPTED,
        )


class SweepStatusAPIView(APIView):
    """
    GET /api/sweeps/status/?sweep_id=<id>
    GET /api/sweeps/status/?product_id=<id>   (latest sweep of the product)
    """

    def get(self, request):
        sweep_id = request.query_params.get("sweep_id") or request.query_params.get("sweepId")
        product_id = request.query_params.get("product_id") or request.query_params.get("productId")

        if not sweep_id and not product_id:
            return Response(
                {"error": "Either sweep_id or product_id is required"},
                status=status.HTTP_400_BAD_REQUEST,
            )

        qs = Sweep.objects.all()
        try:
            if sweep_id:
                sweep = qs.filter(pk=int(sweep_id)).first()
            else:
                sweep = qs.filter(product_id=int(product_id)).order_by("-started_at", "-id").first()
        except ValueError:
            return Response({"error": "Invalid id"}, status=status.HTTP_400_BAD_REQUEST)

        if sweep is None:
            return Response({"error": "Sweep not found"}, status=status.HTTP_404_NOT_FOUND)

        return Response({"success": True, "sweep": SweepSerializer(sweep).data})
