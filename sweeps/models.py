from django.db import models
from django.utils import timezone

from abstract.models import Common
from products.models import Product


class Sweep(Common):
    STATE_PENDING = "PENDING"
    STATE_RUNNING = "RUNNING"
    STATE_COMPLETED = "COMPLETED"
    STATE_FAILED = "FAILED"
    STATE_CHOICES = [
        (STATE_PENDING, "Pending"),
        (STATE_RUNNING, "Running"),
        (STATE_COMPLETED, "Completed"),
        (STATE_FAILED, "Failed"),
    ]

    MODE_ALL = "all"
    MODE_SPECIFIC = "specific"
    MODE_CHOICES = [
        (MODE_ALL, "All screens"),
        (MODE_SPECIFIC, "Specific flow"),
    ]

    product = models.ForeignKey(
        Product,
        on_delete=models.CASCADE,
        related_name="sweeps"
    )

    sweep_status = models.CharField(
        max_length=16,
        choices=STATE_CHOICES,
        default=STATE_PENDING,
        db_index=True,
    )
    capture_mode = models.CharField(max_length=16, choices=MODE_CHOICES, default=MODE_ALL)
    selected_flow = models.CharField(max_length=255, blank=True, default="")
    detect_changes_only = models.BooleanField(default=False)

    started_at = models.DateTimeField(default=timezone.now, db_index=True)
    finished_on = models.DateTimeField(null=True, blank=True)

    routes_total = models.PositiveIntegerField(default=0)
    routes_captured = models.PositiveIntegerField(default=0)
    changes_detected = models.PositiveIntegerField(default=0)

    return_code = models.IntegerField(null=True, blank=True)
    output = models.TextField(blank=True, default="")
    error_message = models.TextField(blank=True, default="")

    class Meta(Common.Meta):
        ordering = ["-started_at"]

    def __str__(self):
        return f"Sweep {self.id} ({self.sweep_status})"

    @property
    def is_finished(self) -> bool:
        return self.sweep_status in {self.STATE_COMPLETED, self.STATE_FAILED}

    def mark(self, state: str, **fields):
        self.sweep_status = state
        if state in {self.STATE_COMPLETED, self.STATE_FAILED} and not self.finished_on:
            self.finished_on = timezone.now()
        for key, value in fields.items():
            setattr(self, key, value)
        self.save()
