import shutil
import subprocess
import tempfile
from io import StringIO
from unittest import mock

import cv2
import numpy as np
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from products.models import Product
from screens.models import Capture, Route

from .models import Sweep
from .runner import run_sweep_blocking, sweep_command


def _png(value=255):
    ok, buf = cv2.imencode(".png", np.full((20, 20, 3), value, dtype=np.uint8))
    assert ok
    return buf.tobytes()


class SweepAPITests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.product = Product.objects.create(name="Shop", staging_url="https://shop.example.com")

    @mock.patch("sweeps.views.launch_sweep")
    def test_start_sweep(self, launch):
        resp = self.client.post(
            "/api/sweeps/",
            {"product_id": self.product.id, "detect_changes_only": True},
            format="json",
        )

        self.assertEqual(resp.status_code, 202, resp.data)
        sweep = Sweep.objects.get()
        launch.assert_called_once_with(sweep)
        self.assertEqual(resp.data["sweep"]["sweep_status"], Sweep.STATE_PENDING)
        self.assertEqual(sweep.capture_mode, Sweep.MODE_ALL)
        self.assertTrue(sweep.detect_changes_only)

    @mock.patch("sweeps.views.launch_sweep")
    def test_specific_mode_needs_a_flow(self, launch):
        resp = self.client.post(
            "/api/sweeps/",
            {"product_id": self.product.id, "capture_mode": "specific"},
            format="json",
        )
        self.assertEqual(resp.status_code, 400)
        launch.assert_not_called()

    @mock.patch("sweeps.views.launch_sweep")
    def test_one_active_sweep_per_product(self, launch):
        Sweep.objects.create(product=self.product, sweep_status=Sweep.STATE_RUNNING)

        resp = self.client.post("/api/sweeps/", {"product_id": self.product.id}, format="json")

        self.assertEqual(resp.status_code, 409)
        launch.assert_not_called()

    @mock.patch("sweeps.views.launch_sweep")
    def test_start_locks_product_row(self, launch):
        lock = mock.patch.object(
            Product.objects, "select_for_update", wraps=Product.objects.select_for_update
        )
        with lock as select_for_update:
            first = self.client.post("/api/sweeps/", {"product_id": self.product.id}, format="json")
            second = self.client.post("/api/sweeps/", {"product_id": self.product.id}, format="json")

        self.assertEqual(first.status_code, 202)
        self.assertEqual(second.status_code, 409)
        self.assertEqual(select_for_update.call_count, 2)
        self.assertEqual(Sweep.objects.count(), 1)
        launch.assert_called_once()

    def test_status_lookup(self):
        older = Sweep.objects.create(product=self.product, sweep_status=Sweep.STATE_COMPLETED)
        newer = Sweep.objects.create(product=self.product)

        by_id = self.client.get("/api/sweeps/status/", {"sweep_id": older.id})
        by_product = self.client.get("/api/sweeps/status/", {"productId": self.product.id})

        self.assertEqual(by_id.data["sweep"]["id"], older.id)
        self.assertEqual(by_product.data["sweep"]["id"], newer.id)

    def test_status_errors(self):
        self.assertEqual(self.client.get("/api/sweeps/status/").status_code, 400)
        self.assertEqual(self.client.get("/api/sweeps/status/", {"sweep_id": "abc"}).status_code, 400)
        self.assertEqual(self.client.get("/api/sweeps/status/", {"sweep_id": 999}).status_code, 404)


class SweepRunnerTests(TestCase):
    def setUp(self):
        product = Product.objects.create(name="Shop", staging_url="https://shop.example.com")
        self.sweep = Sweep.objects.create(product=product)

    def test_command_is_an_argument_list(self):
        cmd = sweep_command(self.sweep.id)
        self.assertEqual(cmd[-2:], ["run_sweep", str(self.sweep.id)])
        self.assertTrue(cmd[1].endswith("manage.py"))

    @mock.patch("sweeps.runner.subprocess.run")
    def test_success_completes_sweep(self, run):
        run.return_value = subprocess.CompletedProcess([], 0, stdout="All done!\n", stderr="")

        sweep = run_sweep_blocking(self.sweep.id, timeout=5)

        self.assertEqual(sweep.sweep_status, Sweep.STATE_COMPLETED)
        self.assertEqual(sweep.return_code, 0)
        self.assertEqual(sweep.output, "All done!")
        self.assertIsNotNone(sweep.finished_on)
        self.assertEqual(run.call_args.kwargs["timeout"], 5)
        self.assertFalse(run.call_args.kwargs["check"])

    @mock.patch("sweeps.runner.subprocess.run")
    def test_nonzero_exit_fails_sweep(self, run):
        run.return_value = subprocess.CompletedProcess([], 1, stdout="", stderr="Traceback: boom")

        sweep = run_sweep_blocking(self.sweep.id, timeout=5)

        self.assertEqual(sweep.sweep_status, Sweep.STATE_FAILED)
        self.assertEqual(sweep.return_code, 1)
        self.assertEqual(sweep.error_message, "Traceback: boom")

    @mock.patch("sweeps.runner.subprocess.run", side_effect=subprocess.TimeoutExpired(cmd="x", timeout=5))
    def test_timeout_fails_sweep(self, run):
        sweep = run_sweep_blocking(self.sweep.id, timeout=5)
        self.assertEqual(sweep.sweep_status, Sweep.STATE_FAILED)
        self.assertEqual(sweep.error_message, "Sweep timed out after 5s")


class RunSweepCommandTests(TestCase):
    def setUp(self):
        media = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, media, ignore_errors=True)
        override = override_settings(MEDIA_ROOT=media, MEDIA_URL="/media/")
        override.enable()
        self.addCleanup(override.disable)

        self.product = Product.objects.create(name="Shop", staging_url="https://shop.example.com")
        self.home = Route.objects.create(product=self.product, name="Home", path="/", flow_name="Browse")
        self.cart = Route.objects.create(product=self.product, name="Cart", path="/cart", flow_name="Checkout")

        patcher = mock.patch("sweeps.management.commands.run_sweep.ScreenshotSession")
        session_cls = patcher.start()
        self.addCleanup(patcher.stop)
        session_cls.return_value.__exit__.return_value = False
        self.session = session_cls.return_value.__enter__.return_value

    def _run(self, sweep):
        out, err = StringIO(), StringIO()
        call_command("run_sweep", sweep.id, stdout=out, stderr=err)
        sweep.refresh_from_db()
        return out.getvalue(), err.getvalue()

    def test_captures_every_route(self):
        self.session.capture.return_value = _png()
        sweep = Sweep.objects.create(product=self.product)

        out, _ = self._run(sweep)

        self.assertEqual(sweep.sweep_status, Sweep.STATE_COMPLETED)
        self.assertEqual(sweep.routes_total, 2)
        self.assertEqual(sweep.routes_captured, 2)
        self.assertEqual(Capture.objects.count(), 2)
        self.session.capture.assert_any_call("https://shop.example.com/cart")
        self.assertIn("All done!", out)

    def test_counts_changes_against_previous_sweep(self):
        self.session.capture.return_value = _png(255)
        self._run(Sweep.objects.create(product=self.product))

        self.session.capture.return_value = _png(0)
        second = Sweep.objects.create(product=self.product)
        self._run(second)

        self.assertEqual(second.changes_detected, 2)

    def test_specific_flow_only(self):
        self.session.capture.return_value = _png()
        sweep = Sweep.objects.create(
            product=self.product, capture_mode=Sweep.MODE_SPECIFIC, selected_flow="Checkout"
        )

        self._run(sweep)

        self.assertEqual(sweep.routes_total, 1)
        self.assertEqual(list(Capture.objects.values_list("route_id", flat=True)), [self.cart.id])

    def test_failed_screen_does_not_abort(self):
        def capture(url):
            if url.endswith("/cart"):
                raise RuntimeError("navigation timeout")
            return _png()

        self.session.capture.side_effect = capture
        sweep = Sweep.objects.create(product=self.product)

        _, err = self._run(sweep)

        self.assertEqual(sweep.sweep_status, Sweep.STATE_COMPLETED)
        self.assertEqual(sweep.routes_captured, 1)
        self.assertIn("navigation timeout", err)

    def test_unknown_sweep(self):
        with self.assertRaises(CommandError):
            call_command("run_sweep", 999, stdout=StringIO(), stderr=StringIO())
