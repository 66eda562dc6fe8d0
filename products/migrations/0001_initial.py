from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Product",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_on", models.DateTimeField(auto_now_add=True)),
                ("last_modified", models.DateTimeField(auto_now=True)),
                ("status", models.CharField(choices=[("a", "Active"), ("i", "Inactive")], db_index=True, default="a", max_length=1)),
                ("name", models.CharField(max_length=255)),
                ("staging_url", models.URLField(max_length=500)),
                ("auth_state", models.CharField(choices=[("public", "Public"), ("authenticated", "Authenticated")], default="public", max_length=20)),
                ("login_email", models.EmailField(blank=True, max_length=254, null=True)),
                ("login_password", models.CharField(blank=True, max_length=255, null=True)),
            ],
            options={
                "verbose_name_plural": "Products",
                "ordering": ["-created_on"],
                "abstract": False,
            },
        ),
    ]
