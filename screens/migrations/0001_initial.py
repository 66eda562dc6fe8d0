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
            name="Flow",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_on", models.DateTimeField(auto_now_add=True)),
                ("last_modified", models.DateTimeField(auto_now=True)),
                ("status", models.CharField(choices=[("a", "Active"), ("i", "Inactive")], db_index=True, default="a", max_length=1)),
                ("name", models.CharField(max_length=255)),
                ("level", models.PositiveIntegerField(default=0)),
                ("order_index", models.PositiveIntegerField(default=0)),
                ("step_count", models.PositiveIntegerField(default=0)),
                ("parent_flow", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="child_flows", to="screens.flow")),
                ("product", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="flows", to="products.product")),
            ],
            options={
                "ordering": ["-created_on"],
                "abstract": False,
                "unique_together": {("product", "name")},
            },
        ),
        migrations.CreateModel(
            name="Route",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_on", models.DateTimeField(auto_now_add=True)),
                ("last_modified", models.DateTimeField(auto_now=True)),
                ("status", models.CharField(choices=[("a", "Active"), ("i", "Inactive")], db_index=True, default="a", max_length=1)),
                ("name", models.CharField(max_length=255)),
                ("path", models.CharField(max_length=500)),
                ("flow_name", models.CharField(blank=True, max_length=255, null=True)),
                ("flow", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="routes", to="screens.flow")),
                ("product", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="routes", to="products.product")),
            ],
            options={
                "ordering": ["created_on", "id"],
                "abstract": False,
                "unique_together": {("product", "path")},
            },
        ),
        migrations.CreateModel(
            name="Capture",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("screenshot_url", models.TextField()),
                ("captured_at", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ("has_changes", models.BooleanField(default=False)),
                ("diff_percentage", models.FloatField(default=0)),
                ("change_summary", models.TextField(blank=True, null=True)),
                ("route", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="captures", to="screens.route")),
            ],
            options={
                "ordering": ["-captured_at", "-id"],
                "get_latest_by": "captured_at",
            },
        ),
        migrations.CreateModel(
            name="Connection",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_on", models.DateTimeField(auto_now_add=True)),
                ("product", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="connections", to="products.product")),
                ("source_route", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="outgoing_connections", to="screens.route")),
                ("destination_route", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="incoming_connections", to="screens.route")),
            ],
            options={
                "ordering": ["id"],
                "unique_together": {("source_route", "destination_route")},
            },
        ),
        migrations.CreateModel(
            name="Component",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_on", models.DateTimeField(auto_now_add=True)),
                ("last_modified", models.DateTimeField(auto_now=True)),
                ("status", models.CharField(choices=[("a", "Active"), ("i", "Inactive")], db_index=True, default="a", max_length=1)),
                ("name", models.CharField(max_length=255)),
                ("image_url", models.TextField(blank=True)),
                ("product", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="components", to="products.product")),
            ],
            options={
                "ordering": ["-created_on"],
                "abstract": False,
            },
        ),
        migrations.CreateModel(
            name="ComponentInstance",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_on", models.DateTimeField(auto_now_add=True)),
                ("component", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="instances", to="screens.component")),
                ("route", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="component_instances", to="screens.route")),
            ],
        ),
    ]
