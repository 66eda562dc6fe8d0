import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("products", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Sweep",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_on", models.DateTimeField(auto_now_add=True)),
                ("last_modified", models.DateTimeField(auto_now=True)),
                ("status", models.CharField(choices=[("a", "Active"), ("i", "Inactive")], db_index=True, default="a", max_length=1)),
                ("sweep_status", models.CharField(choices=[("PENDING", "Pending"), ("RUNNING", "Running"), ("COMPLETED", "Completed"), ("FAILED", "Failed")], db_index=True, default="PENDING", max_length=16)),
                ("capture_mode", models.CharField(choices=[("all", "All screens"), ("specific", "Specific flow")], default="all", max_length=16)),
                ("selected_flow", models.CharField(blank=True, default="", max_length=255)),
                ("detect_changes_only", models.BooleanField(default=False)),
                ("started_at", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ("finished_on", models.DateTimeField(blank=True, null=True)),
                ("routes_total", models.PositiveIntegerField(default=0)),
                ("routes_captured", models.PositiveIntegerField(default=0)),
                ("changes_detected", models.PositiveIntegerField(default=0)),
                ("return_code", models.IntegerField(blank=True, null=True)),
                ("output", models.TextField(blank=True, default="")),
                ("error_message", models.TextField(blank=True, default="")),
                ("product", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="sweeps", to="products.product")),
            ],
            options={
                "ordering": ["-started_at"],
                "abstract": False,
            },
        ),
    ]
