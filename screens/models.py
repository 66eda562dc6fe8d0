from django.db import models
from django.utils import timezone

from abstract.models import Common
from products.models import Product

UNGROUPED_FLOW = "Ungrouped"


class Flow(Common):

    product = models.ForeignKey(
        Product,
        on_delete=models.CASCADE,
        related_name="flows"
    )

    name = models.CharField(max_length=255)

    # flow metadata hierarchy, independent of the screen navigation tree
    parent_flow = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="child_flows"
    )
    level = models.PositiveIntegerField(default=0)
    order_index = models.PositiveIntegerField(default=0)
    step_count = models.PositiveIntegerField(default=0)

    class Meta(Common.Meta):
        unique_together = ("product", "name")

    def __str__(self):
        return self.name


class Route(Common):

    product = models.ForeignKey(
        Product,
        on_delete=models.CASCADE,
        related_name="routes"
    )

    name = models.CharField(max_length=255)
    path = models.CharField(max_length=500)   # /checkout/payment

    flow_name = models.CharField(max_length=255, null=True, blank=True)
    flow = models.ForeignKey(
        Flow,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="routes"
    )

    class Meta(Common.Meta):
        unique_together = ("product", "path")
        ordering = ["created_on", "id"]

    def __str__(self):
        return f"{self.name} ({self.path})"

    @property
    def flow_label(self) -> str:
        return self.flow_name or UNGROUPED_FLOW


class Capture(models.Model):

    route = models.ForeignKey(
        Route,
        on_delete=models.CASCADE,
        related_name="captures"
    )

    screenshot_url = models.TextField()

    captured_at = models.DateTimeField(default=timezone.now, db_index=True)

    has_changes = models.BooleanField(default=False)
    diff_percentage = models.FloatField(default=0)
    change_summary = models.TextField(null=True, blank=True)

    class Meta:
        ordering = ["-captured_at", "-id"]
        get_latest_by = "captured_at"

    def __str__(self):
        return f"{self.route_id} @ {self.captured_at:%Y-%m-%d %H:%M}"


class Connection(models.Model):

    product = models.ForeignKey(
        Product,
        on_delete=models.CASCADE,
        related_name="connections"
    )

    source_route = models.ForeignKey(
        Route,
        on_delete=models.CASCADE,
        related_name="outgoing_connections"
    )
    destination_route = models.ForeignKey(
        Route,
        on_delete=models.CASCADE,
        related_name="incoming_connections"
    )

    created_on = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ("source_route", "destination_route")
        ordering = ["id"]


class Component(Common):

    product = models.ForeignKey(
        Product,
        on_delete=models.CASCADE,
        related_name="components"
    )

    name = models.CharField(max_length=255)
    image_url = models.TextField(blank=True)

    def __str__(self):
        return self.name


class ComponentInstance(models.Model):

    component = models.ForeignKey(
        Component,
        on_delete=models.CASCADE,
        related_name="instances"
    )
    route = models.ForeignKey(
        Route,
        on_delete=models.CASCADE,
        related_name="component_instances"
    )

    created_on = models.DateTimeField(auto_now_add=True)
