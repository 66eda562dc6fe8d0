from django.contrib import admin
from import_export.admin import ImportExportModelAdmin

from .models import Product


class ProductAdmin(ImportExportModelAdmin):
    list_filter = ("status", "auth_state")
    list_display = ("id", "name", "staging_url", "auth_state", "route_count", "created_on")
    search_fields = ("name", "staging_url")
    exclude = ("login_password",)

    def route_count(self, obj):
        return obj.routes.count()

    route_count.short_description = "Screens"


admin.site.register(Product, ProductAdmin)
