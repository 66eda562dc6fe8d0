from rest_framework import serializers

from products.models import Product

from .models import Sweep


class SweepCreateSerializer(serializers.Serializer):
    product_id = serializers.PrimaryKeyRelatedField(queryset=Product.objects.all(), source="product")
    capture_mode = serializers.ChoiceField(choices=Sweep.MODE_CHOICES, default=Sweep.MODE_ALL)
    selected_flow = serializers.CharField(required=False, allow_blank=True, default="")
    detect_changes_only = serializers.BooleanField(default=False)

    def validate(self, attrs):
        if attrs["capture_mode"] == Sweep.MODE_SPECIFIC and not attrs.get("selected_flow"):
            raise serializers.ValidationError("selected_flow is required when capture_mode is 'specific'")
        if attrs["capture_mode"] == Sweep.MODE_ALL:
            attrs["selected_flow"] = ""
        return attrs


class SweepSerializer(serializers.ModelSerializer):
    class Meta:
        model = Sweep
        fields = (
            "id",
            "product",
            "sweep_status",
            "capture_mode",
            "selected_flow",
            "detect_changes_only",
            "started_at",
            "finished_on",
            "routes_total",
            "routes_captured",
            "changes_detected",
            "return_code",
            "output",
            "error_message",
        )
        read_only_fields = fields
