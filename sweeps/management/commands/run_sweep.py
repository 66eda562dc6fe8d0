import logging

from django.core.management.base import BaseCommand, CommandError

from screens.capture_service import record_capture
from screens.models import Route
from sweeps.crawler import ScreenshotSession
from sweeps.models import Sweep

logger = logging.getLogger(__name__)


def select_routes(sweep: Sweep):
    routes = Route.objects.filter(product=sweep.product, status="a").order_by("created_on", "id")
    if sweep.capture_mode == Sweep.MODE_SPECIFIC and sweep.selected_flow:
        routes = routes.filter(flow_name=sweep.selected_flow)
    return list(routes)


class Command(BaseCommand):
    help = "Capture every screen of a sweep's product and record visual changes"

    def add_arguments(self, parser):
        parser.add_argument("sweep_id", type=int)

    def handle(self, *args, **options):
        try:
            sweep = Sweep.objects.select_related("product").get(pk=options["sweep_id"])
        except Sweep.DoesNotExist:
            raise CommandError(f"Sweep {options['sweep_id']} does not exist")

        routes = select_routes(sweep)
        sweep.mark(Sweep.STATE_RUNNING, routes_total=len(routes), routes_captured=0, changes_detected=0)
        self.stdout.write(f"Found {len(routes)} {sweep.product.name} routes to capture")

        try:
            with ScreenshotSession() as session:
                for route in routes:
                    self._capture_route(sweep, session, route)
        except Exception as exc:
            logger.exception("Sweep %s aborted", sweep.id)
            sweep.mark(Sweep.STATE_FAILED, error_message=str(exc))
            raise CommandError(f"Sweep {sweep.id} failed: {exc}")

        sweep.mark(Sweep.STATE_COMPLETED)
        self.stdout.write(
            f"All done! captured={sweep.routes_captured}/{sweep.routes_total} "
            f"changes={sweep.changes_detected}"
        )

    def _capture_route(self, sweep: Sweep, session: ScreenshotSession, route: Route) -> None:
        url = sweep.product.screen_url(route.path)
        try:
            screenshot = session.capture(url)
            capture = record_capture(route, screenshot, detect_changes_only=sweep.detect_changes_only)
        except Exception as exc:
            # one broken screen must not abort the whole sweep
            logger.warning("Sweep %s: capturing %s failed: %s", sweep.id, url, exc)
            self.stderr.write(f"Error capturing {route.name}: {exc}")
            return

        sweep.routes_captured += 1
        if capture is not None and capture.has_changes:
            sweep.changes_detected += 1
            self.stdout.write(f"Changes detected on {route.name}: {capture.change_summary}")
        else:
            self.stdout.write(f"Captured: {route.name}")
        sweep.save(update_fields=["routes_captured", "changes_detected", "last_modified"])
