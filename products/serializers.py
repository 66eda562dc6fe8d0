from rest_framework import serializers

from .models import Product


class ProductSerializer(serializers.ModelSerializer):
    login_password = serializers.CharField(
        write_only=True, required=False, allow_blank=True, allow_null=True
    )

    class Meta:
        model = Product
        fields = (
            "id",
            "name",
            "staging_url",
            "auth_state",
            "login_email",
            "login_password",
            "created_on",
        )
        read_only_fields = ("id", "created_on")

    def validate(self, attrs):
        auth_state = attrs.get("auth_state", Product.AUTH_PUBLIC)
        if auth_state == Product.AUTH_AUTHENTICATED:
            if not attrs.get("login_email") or not attrs.get("login_password"):
                raise serializers.ValidationError(
                    "Login credentials required for authenticated products"
                )
        else:
            attrs["login_email"] = None
            attrs["login_password"] = None
        return attrs
