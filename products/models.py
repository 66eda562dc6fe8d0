from django.db import models

from abstract.models import Common


class Product(Common):
    AUTH_PUBLIC = "public"
    AUTH_AUTHENTICATED = "authenticated"
    AUTH_STATE_CHOICES = (
        (AUTH_PUBLIC, "Public"),
        (AUTH_AUTHENTICATED, "Authenticated"),
    )

    name = models.CharField(max_length=255)
    staging_url = models.URLField(max_length=500)

    auth_state = models.CharField(
        max_length=20,
        choices=AUTH_STATE_CHOICES,
        default=AUTH_PUBLIC,
    )

    # only populated for authenticated products
    login_email = models.EmailField(null=True, blank=True)
    login_password = models.CharField(max_length=255, null=True, blank=True)

    class Meta(Common.Meta):
        verbose_name_plural = "Products"

    def __str__(self):
        return self.name

    def screen_url(self, path: str) -> str:
        base = self.staging_url.rstrip("/")
        if not path:
            return base
        return f"{base}/{path.lstrip('/')}"
