import base64
import binascii

from rest_framework import serializers

from .models import Capture, Connection, Route


class CaptureSerializer(serializers.ModelSerializer):
    class Meta:
        model = Capture
        fields = (
            "id",
            "route",
            "screenshot_url",
            "captured_at",
            "has_changes",
            "diff_percentage",
            "change_summary",
        )
        read_only_fields = fields


class RouteSerializer(serializers.ModelSerializer):
    class Meta:
        model = Route
        fields = ("id", "product", "name", "path", "flow_name", "flow", "created_on")
        read_only_fields = fields


class CaptureUploadSerializer(serializers.Serializer):
    """A crawler-submitted screenshot for an existing or newly discovered route."""

    route_id = serializers.IntegerField(required=False)

    # route discovery
    product_id = serializers.IntegerField(required=False)
    path = serializers.CharField(required=False, allow_blank=True)
    name = serializers.CharField(required=False, allow_blank=True)
    flow_name = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    screenshot = serializers.FileField(required=False)
    screenshot_base64 = serializers.CharField(required=False, trim_whitespace=True)

    detect_changes_only = serializers.BooleanField(default=False)

    def validate_screenshot_base64(self, value):
        if "," in value and value.startswith("data:"):
            value = value.split(",", 1)[1]
        try:
            return base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError):
            raise serializers.ValidationError("Invalid base64 screenshot payload")

    def validate(self, attrs):
        if not attrs.get("route_id") and not (attrs.get("product_id") and attrs.get("path") is not None):
            raise serializers.ValidationError("Provide route_id, or product_id and path")

        upload = attrs.get("screenshot")
        encoded = attrs.get("screenshot_base64")
        if bool(upload) == bool(encoded):
            raise serializers.ValidationError("Provide exactly one of screenshot or screenshot_base64")

        attrs["screenshot_bytes"] = upload.read() if upload else encoded
        return attrs


class ConnectionSerializer(serializers.ModelSerializer):
    class Meta:
        model = Connection
        fields = ("id", "product", "source_route", "destination_route", "created_on")
        read_only_fields = ("id", "product", "created_on")
        # duplicates are collapsed by the view, not rejected
        validators = []

    def validate(self, attrs):
        source = attrs["source_route"]
        destination = attrs["destination_route"]
        if source.id == destination.id:
            raise serializers.ValidationError("A route cannot connect to itself")
        if source.product_id != destination.product_id:
            raise serializers.ValidationError("Routes belong to different products")
        return attrs
