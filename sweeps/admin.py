from django.contrib import admin

from sweeps.models import Sweep


@admin.register(Sweep)
class SweepAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "product",
        "sweep_status",
        "capture_mode",
        "routes_captured",
        "routes_total",
        "changes_detected",
        "started_at",
        "finished_on",
    )
    list_filter = ("sweep_status", "capture_mode", "product")
    readonly_fields = ("return_code", "output", "error_message", "started_at", "finished_on")
    ordering = ("-started_at",)
