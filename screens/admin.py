from django.contrib import admin

from screens.models import Capture, Component, ComponentInstance, Connection, Flow, Route


class HiddenFromSidebarAdmin(admin.ModelAdmin):
    def get_model_perms(self, request):
        return {}


class CaptureInline(admin.TabularInline):
    model = Capture
    extra = 0
    show_change_link = True
    fields = ("captured_at", "has_changes", "diff_percentage", "change_summary", "screenshot_url")
    readonly_fields = fields


class ComponentInstanceInline(admin.TabularInline):
    model = ComponentInstance
    extra = 0
    fields = ("route", "created_on")
    readonly_fields = ("created_on",)


@admin.register(Flow)
class FlowAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "product", "parent_flow", "level", "order_index", "step_count")
    list_filter = ("product",)
    search_fields = ("name",)
    ordering = ("product", "level", "order_index")


@admin.register(Route)
class RouteAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "path", "flow_name", "product", "status", "created_on")
    list_filter = ("status", "product", "flow_name")
    search_fields = ("name", "path", "flow_name")
    ordering = ("-created_on",)
    inlines = [CaptureInline]


class CaptureAdmin(HiddenFromSidebarAdmin):
    list_display = ("id", "route", "captured_at", "has_changes", "diff_percentage", "change_summary")
    list_filter = ("has_changes",)
    search_fields = ("route__name", "route__path", "screenshot_url")
    ordering = ("-captured_at",)


@admin.register(Connection)
class ConnectionAdmin(admin.ModelAdmin):
    list_display = ("id", "product", "source_route", "destination_route", "created_on")
    list_filter = ("product",)
    search_fields = ("source_route__path", "destination_route__path")


@admin.register(Component)
class ComponentAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "product", "created_on")
    search_fields = ("name",)
    inlines = [ComponentInstanceInline]


admin.site.register(Capture, CaptureAdmin)
