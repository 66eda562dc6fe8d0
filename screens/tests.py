import base64
import shutil
import tempfile
from unittest import mock

import cv2
import numpy as np
import requests
from django.test import SimpleTestCase, TestCase, override_settings
from rest_framework.test import APIClient

from products.models import Product

from .capture_differ import (
    DIMENSIONS_CHANGED,
    FIRST_CAPTURE,
    PNG_SIGNATURE,
    ImageDecodeError,
    count_diff_pixels,
    decode_image,
    diff_images,
    diff_screenshot,
)
from .capture_service import (
    ScreenshotFetchError,
    diff_against_previous,
    fetch_image,
    record_capture,
)
from .flow_service import build_flow_hierarchy, flow_tree_payload
from .flow_trees import (
    UNGROUPED,
    ConnectionRecord,
    RouteRecord,
    build_flow_breadcrumbs,
    build_flow_trees,
    clean_screen_name,
    route_ancestry,
)
from .models import Capture, Component, ComponentInstance, Connection, Flow, Route


def _png(image: np.ndarray) -> bytes:
    ok, buf = cv2.imencode(".png", image)
    assert ok
    return buf.tobytes()


def _white(height=100, width=100) -> np.ndarray:
    return np.full((height, width, 3), 255, dtype=np.uint8)


def _with_black_pixels(count, height=100, width=100) -> np.ndarray:
    img = _white(height, width)
    flat = img.reshape(-1, 3)
    flat[:count] = 0
    return img


def _edges(*pairs):
    return [ConnectionRecord(src, dst) for src, dst in pairs]


def _ids(node):
    return {"id": node.id, "children": [_ids(child) for child in node.children]}


def _all_ids(node):
    found = [node.id]
    stack = list(node.children)
    while stack:
        current = stack.pop()
        found.append(current.id)
        stack.extend(current.children)
    return found


class CaptureDifferTests(SimpleTestCase):
    def test_identical_images_have_no_changes(self):
        png = _png(_with_black_pixels(300))
        result = diff_screenshot(png, png)
        self.assertFalse(result.has_changes)
        self.assertEqual(result.diff_percentage, 0)
        self.assertIsNone(result.change_summary)

    def test_dimension_change_is_always_flagged(self):
        result = diff_screenshot(_png(_white(100, 100)), _png(_white(101, 100)))
        self.assertTrue(result.has_changes)
        self.assertEqual(result.change_summary, DIMENSIONS_CHANGED)
        self.assertEqual(result.diff_percentage, 0)

    def test_half_percent_is_not_a_change(self):
        result = diff_screenshot(_png(_with_black_pixels(50)), _png(_white()))
        self.assertFalse(result.has_changes)
        self.assertEqual(result.diff_percentage, 0.5)
        self.assertIsNone(result.change_summary)

    def test_just_above_threshold_is_a_change(self):
        result = diff_screenshot(_png(_with_black_pixels(51)), _png(_white()))
        self.assertTrue(result.has_changes)
        self.assertAlmostEqual(result.diff_percentage, 0.51)
        self.assertEqual(result.change_summary, "0.51% of pixels changed")

    def test_no_previous_capture_is_baseline(self):
        self.assertEqual(diff_screenshot(_png(_with_black_pixels(5000)), None), FIRST_CAPTURE)
        self.assertEqual(diff_images(decode_image(_png(_white())), None), FIRST_CAPTURE)

    def test_undecodable_previous_degrades_to_first_capture(self):
        result = diff_screenshot(_png(_white()), b"definitely not a png")
        self.assertEqual(result, FIRST_CAPTURE)

    def test_undecodable_new_screenshot_raises(self):
        with self.assertRaises(ImageDecodeError):
            diff_screenshot(b"garbage", _png(_white()))
        with self.assertRaises(ImageDecodeError):
            decode_image(b"")

    def test_small_colour_noise_is_tolerated(self):
        noisy = _white()
        noisy[:, :] = (250, 250, 250)
        self.assertEqual(count_diff_pixels(decode_image(_png(noisy)), decode_image(_png(_white()))), 0)

    def test_strong_colour_change_is_counted(self):
        img = _white()
        img[0:10, 0:10] = (0, 0, 255)
        changed = count_diff_pixels(decode_image(_png(img)), decode_image(_png(_white())))
        self.assertEqual(changed, 100)

    def test_transparent_pixels_blend_over_white(self):
        transparent = np.zeros((4, 4, 4), dtype=np.uint8)
        opaque_white = np.full((4, 4, 4), 255, dtype=np.uint8)
        self.assertEqual(count_diff_pixels(transparent, opaque_white), 0)

    def test_grayscale_is_promoted_to_rgba(self):
        gray = np.full((8, 6), 128, dtype=np.uint8)
        decoded = decode_image(_png(gray))
        self.assertEqual(decoded.shape, (8, 6, 4))
        self.assertTrue((decoded[:, :, 3] == 255).all())

    def test_as_dict_matches_persisted_fields(self):
        result = diff_screenshot(_png(_with_black_pixels(2000)), _png(_white()))
        self.assertEqual(
            result.as_dict(),
            {"has_changes": True, "diff_percentage": 20.0, "change_summary": "20.00% of pixels changed"},
        )


class FlowTreeBuilderTests(SimpleTestCase):
    def setUp(self):
        self.a = RouteRecord("A", "Welcome", "Onboarding")
        self.b = RouteRecord("B", "Profile", "Onboarding")
        self.c = RouteRecord("C", "Done", "Onboarding")

    def test_acyclic_chain(self):
        trees = build_flow_trees([self.a, self.b, self.c], _edges(("A", "B"), ("B", "C")))
        self.assertEqual(list(trees), ["Onboarding"])
        self.assertEqual(
            [_ids(root) for root in trees["Onboarding"]],
            [{"id": "A", "children": [{"id": "B", "children": [{"id": "C", "children": []}]}]}],
        )

    def test_to_dict_carries_route_fields(self):
        trees = build_flow_trees([self.a, self.b], _edges(("A", "B")))
        data = trees["Onboarding"][0].to_dict()
        self.assertEqual(data["id"], "A")
        self.assertEqual(data["name"], "Welcome")
        self.assertEqual(data["flow_name"], "Onboarding")
        self.assertEqual(data["children"][0]["id"], "B")
        self.assertEqual(data["children"][0]["children"], [])

    def test_fully_cyclic_flow_falls_back_to_first_route(self):
        trees = build_flow_trees([self.a, self.b], _edges(("A", "B"), ("B", "A")))
        roots = trees["Onboarding"]
        self.assertEqual(len(roots), 1)
        self.assertEqual(roots[0].id, "A")
        ids = _all_ids(roots[0])
        self.assertEqual(sorted(ids), ["A", "B"])

    def test_cycle_back_edge_is_dropped(self):
        trees = build_flow_trees(
            [self.a, self.b, self.c],
            _edges(("A", "B"), ("B", "C"), ("C", "B")),
        )
        root = trees["Onboarding"][0]
        self.assertEqual(_all_ids(root).count("B"), 1)
        self.assertEqual(root.children[0].children[0].children, [])

    def test_cross_flow_edges_are_not_tree_edges(self):
        x = RouteRecord("X1", "Cart", "X")
        y = RouteRecord("Y1", "Pay", "Y")
        routes = [x, y]
        connections = _edges(("X1", "Y1"))

        trees = build_flow_trees(routes, connections)
        self.assertEqual([_ids(r) for r in trees["X"]], [{"id": "X1", "children": []}])
        self.assertEqual([_ids(r) for r in trees["Y"]], [{"id": "Y1", "children": []}])
        self.assertEqual(build_flow_breadcrumbs(routes, connections), {"Y": "X"})

    def test_unconnected_routes_are_excluded(self):
        lonely = RouteRecord("L", "Settings", "Onboarding")
        trees = build_flow_trees([self.a, lonely, self.b], _edges(("A", "B")))
        self.assertNotIn("L", _all_ids(trees["Onboarding"][0]))
        self.assertEqual(len(trees["Onboarding"]), 1)

    def test_self_loops_are_ignored(self):
        trees = build_flow_trees([self.a, self.b], _edges(("A", "A")))
        self.assertEqual(trees, {})

    def test_duplicate_edges_collapse(self):
        trees = build_flow_trees([self.a, self.b], _edges(("A", "B"), ("A", "B"), ("A", "B")))
        self.assertEqual(len(trees["Onboarding"][0].children), 1)

    def test_depth_is_capped_at_four_levels(self):
        routes = [RouteRecord(str(i), f"Step {i}", "Wizard") for i in range(6)]
        edges = _edges(*[(str(i), str(i + 1)) for i in range(5)])
        root = build_flow_trees(routes, edges)["Wizard"][0]

        depth, node = 0, root
        while node.children:
            node = node.children[0]
            depth += 1
        self.assertEqual(depth, 3)
        self.assertEqual(node.id, "3")
        self.assertEqual(node.depth, 3)

    def test_custom_depth_limit(self):
        routes = [RouteRecord(str(i), f"Step {i}", "Wizard") for i in range(4)]
        edges = _edges(("0", "1"), ("1", "2"), ("2", "3"))
        root = build_flow_trees(routes, edges, max_depth=2)["Wizard"][0]
        self.assertEqual(_ids(root), {"id": "0", "children": [{"id": "1", "children": []}]})

    def test_multiple_roots_follow_route_order(self):
        d = RouteRecord("D", "Intro", "Onboarding")
        trees = build_flow_trees([d, self.a, self.b, self.c], _edges(("A", "C"), ("D", "B")))
        self.assertEqual([root.id for root in trees["Onboarding"]], ["D", "A"])

    def test_shared_child_appears_under_each_root(self):
        trees = build_flow_trees([self.a, self.b, self.c], _edges(("A", "C"), ("B", "C")))
        roots = trees["Onboarding"]
        self.assertEqual([r.id for r in roots], ["A", "B"])
        self.assertEqual([c.id for c in roots[0].children], ["C"])
        self.assertEqual([c.id for c in roots[1].children], ["C"])

    def test_first_expanded_sibling_claims_shared_descendant(self):
        trees = build_flow_trees(
            [self.a, self.b, self.c],
            _edges(("A", "B"), ("A", "C"), ("B", "C")),
        )
        self.assertEqual(
            _ids(trees["Onboarding"][0]),
            {"id": "A", "children": [{"id": "B", "children": [{"id": "C", "children": []}]}]},
        )

    def test_routes_without_flow_are_ungrouped(self):
        p = RouteRecord(1, "Home")
        q = RouteRecord(2, "About", "")
        trees = build_flow_trees([p, q], _edges((1, 2)))
        self.assertEqual(list(trees), [UNGROUPED])
        self.assertEqual(_ids(trees[UNGROUPED][0]), {"id": 1, "children": [{"id": 2, "children": []}]})

    def test_edges_to_unknown_routes_are_ignored(self):
        trees = build_flow_trees([self.a], _edges(("A", "ghost")))
        self.assertEqual(trees, {})

        trees = build_flow_trees([self.a, self.b], _edges(("ghost", "A"), ("A", "B")))
        self.assertEqual([_ids(r) for r in trees["Onboarding"]], [{"id": "A", "children": [{"id": "B", "children": []}]}])

    def test_breadcrumb_picks_dominant_source_flow(self):
        routes = [
            RouteRecord(1, "Home", "Browse"),
            RouteRecord(2, "Search", "Browse"),
            RouteRecord(3, "Sign in", "Account"),
            RouteRecord(4, "Cart", "Checkout"),
        ]
        edges = _edges((1, 4), (2, 4), (3, 4), (4, 3))
        self.assertEqual(
            build_flow_breadcrumbs(routes, edges),
            {"Checkout": "Browse", "Account": "Checkout"},
        )

    def test_breadcrumb_tie_goes_to_smallest_flow_name(self):
        routes = [
            RouteRecord(1, "Zed", "Zeta"),
            RouteRecord(2, "Alpha", "Alpha"),
            RouteRecord(3, "Target", "Target"),
        ]
        edges = _edges((1, 3), (2, 3))
        self.assertEqual(build_flow_breadcrumbs(routes, edges), {"Target": "Alpha"})

    def test_breadcrumb_counts_repeated_edges_once(self):
        routes = [
            RouteRecord("X1", "Cart", "X"),
            RouteRecord("Z1", "Search", "Z"),
            RouteRecord("Z2", "Results", "Z"),
            RouteRecord("Y1", "Pay", "Y"),
        ]
        edges = _edges(("X1", "Y1"), ("X1", "Y1"), ("X1", "Y1"), ("Z1", "Y1"), ("Z2", "Y1"))
        self.assertEqual(build_flow_breadcrumbs(routes, edges), {"Y": "Z"})

    def test_flow_without_incoming_cross_edges_has_no_breadcrumb(self):
        breadcrumbs = build_flow_breadcrumbs([self.a, self.b], _edges(("A", "B")))
        self.assertEqual(breadcrumbs, {})

    def test_route_ancestry(self):
        a = RouteRecord("A", "Onboarding - Welcome", "Onboarding")
        trees = build_flow_trees([a, self.b, self.c], _edges(("A", "B"), ("B", "C")))
        self.assertEqual(
            route_ancestry(trees),
            {"A": [], "B": ["Welcome"], "C": ["Welcome", "Profile"]},
        )


class CleanScreenNameTests(SimpleTestCase):
    def test_leading_flow_name_is_stripped(self):
        self.assertEqual(clean_screen_name("Checkout - Payment", "Checkout"), "Payment")

    def test_is_idempotent(self):
        once = clean_screen_name("Checkout - Payment", "Checkout")
        self.assertEqual(clean_screen_name(once, "Checkout"), "Payment")

    def test_trailing_flow_name_is_stripped(self):
        self.assertEqual(clean_screen_name("Payment | Checkout", "Checkout"), "Payment")

    def test_dashes_and_case(self):
        self.assertEqual(clean_screen_name("checkout – Review", "Checkout"), "Review")
        self.assertEqual(clean_screen_name("Review—CHECKOUT", "Checkout"), "Review")

    def test_only_one_affix_is_removed(self):
        self.assertEqual(clean_screen_name("Checkout - Payment - Checkout", "Checkout"), "Checkout - Payment")

    def test_empty_result_keeps_original(self):
        self.assertEqual(clean_screen_name("- Checkout", "Checkout"), "- Checkout")
        self.assertEqual(clean_screen_name("Checkout", "Checkout"), "Checkout")

    def test_unrelated_names_are_untouched(self):
        self.assertEqual(clean_screen_name("Checkout page", "Checkout"), "Checkout page")
        self.assertEqual(clean_screen_name("Payment", None), "Payment")

    def test_regex_characters_in_flow_name(self):
        self.assertEqual(clean_screen_name("Q&A (beta) - Ask", "Q&A (beta)"), "Ask")


class FlowHierarchyTests(SimpleTestCase):
    def test_nests_and_counts_screens(self):
        flows = [
            {"id": 1, "name": "Shop", "parent_flow_id": None, "level": 0, "order_index": 0, "step_count": 3},
            {"id": 2, "name": "Cart", "parent_flow_id": 1, "level": 1, "order_index": 0, "step_count": 2},
            {"id": 3, "name": "Payment", "parent_flow_id": 2, "level": 2, "order_index": 0, "step_count": 1},
            {"id": 4, "name": "Orphan", "parent_flow_id": 99, "level": 1, "order_index": 1, "step_count": 1},
        ]
        roots = build_flow_hierarchy(flows, {1: 1, 2: 2, 3: 4, 4: 7})

        self.assertEqual([r["id"] for r in roots], [1])
        shop = roots[0]
        self.assertEqual(shop["screenCount"], 7)
        self.assertEqual(shop["children"][0]["screenCount"], 6)
        self.assertEqual(shop["children"][0]["children"][0]["screenCount"], 4)


class _MediaTestCase(TestCase):
    def setUp(self):
        media = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, media, ignore_errors=True)
        override = override_settings(MEDIA_ROOT=media, MEDIA_URL="/media/")
        override.enable()
        self.addCleanup(override.disable)

        self.product = Product.objects.create(name="Publix", staging_url="https://staging.example.com")
        self.route = Route.objects.create(product=self.product, name="Home", path="/")


class CaptureServiceTests(_MediaTestCase):
    def test_first_capture_is_stored_as_baseline(self):
        capture = record_capture(self.route, _png(_white()))
        self.assertFalse(capture.has_changes)
        self.assertEqual(capture.diff_percentage, 0)
        self.assertIsNone(capture.change_summary)
        self.assertTrue(capture.screenshot_url.startswith("/media/screenshots/"))

    def test_jpeg_upload_is_stored_as_png(self):
        ok, buf = cv2.imencode(".jpg", _with_black_pixels(400))
        self.assertTrue(ok)
        jpeg = buf.tobytes()

        first = record_capture(self.route, jpeg)
        stored = fetch_image(first.screenshot_url)
        self.assertTrue(stored.startswith(PNG_SIGNATURE))
        self.assertEqual(decode_image(stored).shape, (100, 100, 4))

        second = record_capture(self.route, jpeg)
        self.assertFalse(second.has_changes)
        self.assertEqual(second.diff_percentage, 0)

    def test_png_is_stored_unchanged(self):
        png = _png(_white())
        capture = record_capture(self.route, png)
        self.assertEqual(fetch_image(capture.screenshot_url), png)

    def test_second_capture_compares_with_stored_previous(self):
        record_capture(self.route, _png(_white()))
        same = record_capture(self.route, _png(_white()))
        changed = record_capture(self.route, _png(_with_black_pixels(2500)))

        self.assertFalse(same.has_changes)
        self.assertTrue(changed.has_changes)
        self.assertEqual(changed.change_summary, "25.00% of pixels changed")
        self.assertEqual(self.route.captures.count(), 3)

    def test_fetch_is_injected(self):
        record_capture(self.route, _png(_white()))
        fetch = mock.Mock(return_value=_png(_white(120, 100)))

        result = diff_against_previous(self.route, _png(_white()), fetch=fetch)

        fetch.assert_called_once_with(self.route.captures.first().screenshot_url)
        self.assertTrue(result.has_changes)
        self.assertEqual(result.change_summary, DIMENSIONS_CHANGED)

    def test_fetch_failure_is_logged_and_treated_as_first_capture(self):
        record_capture(self.route, _png(_white()))

        def broken(url):
            raise ScreenshotFetchError("boom")

        with self.assertLogs("screens.capture_service", level="WARNING") as logs:
            capture = record_capture(self.route, _png(_with_black_pixels(5000)), fetch=broken)

        self.assertFalse(capture.has_changes)
        self.assertEqual(capture.diff_percentage, 0)
        self.assertIn("Could not compare", logs.output[0])

    def test_undecodable_previous_is_logged(self):
        record_capture(self.route, _png(_white()))
        with self.assertLogs("screens.capture_service", level="WARNING"):
            result = diff_against_previous(self.route, _png(_white()), fetch=lambda url: b"not an image")
        self.assertEqual(result, FIRST_CAPTURE)

    def test_detect_changes_only_skips_unchanged(self):
        record_capture(self.route, _png(_white()), detect_changes_only=True)
        skipped = record_capture(self.route, _png(_white()), detect_changes_only=True)
        kept = record_capture(self.route, _png(_with_black_pixels(1000)), detect_changes_only=True)

        self.assertIsNone(skipped)
        self.assertTrue(kept.has_changes)
        self.assertEqual(self.route.captures.count(), 2)

    def test_fetch_image_over_http(self):
        response = mock.Mock(content=b"png-bytes")
        response.raise_for_status.return_value = None
        with mock.patch("screens.capture_service.requests.get", return_value=response) as get:
            self.assertEqual(fetch_image("https://cdn.example.com/a.png", timeout=5), b"png-bytes")
        get.assert_called_once_with("https://cdn.example.com/a.png", timeout=5)

    def test_fetch_image_http_error(self):
        with mock.patch(
            "screens.capture_service.requests.get",
            side_effect=requests.ConnectionError("down"),
        ):
            with self.assertRaises(ScreenshotFetchError):
                fetch_image("https://cdn.example.com/a.png")

    def test_fetch_image_rejects_unknown_urls(self):
        with self.assertRaises(ScreenshotFetchError):
            fetch_image("ftp://elsewhere/a.png")


class FlowTreePayloadTests(TestCase):
    def setUp(self):
        self.product = Product.objects.create(name="Shop", staging_url="https://shop.example.com")

    def _route(self, name, path, flow_name=None):
        return Route.objects.create(product=self.product, name=name, path=path, flow_name=flow_name)

    def test_payload_from_database_rows(self):
        cart = self._route("Checkout - Cart", "/cart", "Checkout")
        pay = self._route("Checkout - Pay", "/pay", "Checkout")
        home = self._route("Home", "/", "Browse")
        self._route("Terms", "/terms", "Browse")
        Connection.objects.create(product=self.product, source_route=cart, destination_route=pay)
        Connection.objects.create(product=self.product, source_route=home, destination_route=cart)

        payload = flow_tree_payload(self.product.id)

        self.assertEqual(list(payload["trees"]), ["Checkout", "Browse"])
        checkout = payload["trees"]["Checkout"]
        self.assertEqual([n["id"] for n in checkout], [cart.id])
        self.assertEqual(checkout[0]["children"][0]["id"], pay.id)
        self.assertEqual(checkout[0]["product_id"], self.product.id)
        self.assertEqual([n["id"] for n in payload["trees"]["Browse"]], [home.id])
        self.assertEqual(payload["breadcrumbs"], {"Checkout": "Browse"})
        self.assertEqual(payload["ancestry"][str(pay.id)], ["Cart"])


class ScreensAPITests(_MediaTestCase):
    def setUp(self):
        super().setUp()
        self.client = APIClient()

    def _b64(self, image):
        return base64.b64encode(_png(image)).decode("ascii")

    def test_upload_discovers_route_and_diffs(self):
        payload = {
            "product_id": self.product.id,
            "path": "checkout/payment",
            "name": "Checkout - Payment",
            "flow_name": "Checkout",
            "screenshot_base64": self._b64(_white()),
        }
        first = self.client.post("/api/screens/captures/", payload, format="json")
        self.assertEqual(first.status_code, 201, first.data)
        self.assertFalse(first.data["capture"]["has_changes"])

        route = Route.objects.get(product=self.product, path="/checkout/payment")
        self.assertEqual(route.flow_name, "Checkout")

        payload["screenshot_base64"] = self._b64(_with_black_pixels(100, 100, 100))
        second = self.client.post("/api/screens/captures/", payload, format="json")
        self.assertEqual(second.status_code, 201)
        self.assertTrue(second.data["capture"]["has_changes"])
        self.assertEqual(second.data["capture"]["change_summary"], "1.00% of pixels changed")
        self.assertEqual(Route.objects.filter(product=self.product, path="/checkout/payment").count(), 1)

    def test_upload_by_route_id(self):
        resp = self.client.post(
            "/api/screens/captures/",
            {"route_id": self.route.id, "screenshot_base64": self._b64(_white())},
            format="json",
        )
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.data["route_id"], self.route.id)

    def test_upload_validation(self):
        missing_image = self.client.post("/api/screens/captures/", {"route_id": self.route.id}, format="json")
        self.assertEqual(missing_image.status_code, 400)

        missing_route = self.client.post(
            "/api/screens/captures/", {"screenshot_base64": self._b64(_white())}, format="json"
        )
        self.assertEqual(missing_route.status_code, 400)

        bad_b64 = self.client.post(
            "/api/screens/captures/", {"route_id": self.route.id, "screenshot_base64": "%%%"}, format="json"
        )
        self.assertEqual(bad_b64.status_code, 400)

        not_an_image = self.client.post(
            "/api/screens/captures/",
            {"route_id": self.route.id, "screenshot_base64": base64.b64encode(b"hello").decode()},
            format="json",
        )
        self.assertEqual(not_an_image.status_code, 400)
        self.assertEqual(Capture.objects.count(), 0)

    def test_route_capture_history(self):
        record_capture(self.route, _png(_white()))
        record_capture(self.route, _png(_with_black_pixels(3000)))
        resp = self.client.get(f"/api/screens/routes/{self.route.id}/captures/")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(len(resp.data["captures"]), 2)
        self.assertTrue(resp.data["captures"][0]["has_changes"])

    def test_connections_are_deduplicated_and_self_loops_rejected(self):
        other = Route.objects.create(product=self.product, name="About", path="/about")
        body = {"source_route": self.route.id, "destination_route": other.id}

        created = self.client.post("/api/screens/connections/", body, format="json")
        again = self.client.post("/api/screens/connections/", body, format="json")
        loop = self.client.post(
            "/api/screens/connections/",
            {"source_route": self.route.id, "destination_route": self.route.id},
            format="json",
        )

        self.assertEqual(created.status_code, 201)
        self.assertEqual(again.status_code, 200)
        self.assertEqual(loop.status_code, 400)
        self.assertEqual(Connection.objects.count(), 1)
        self.assertEqual(Connection.objects.get().product_id, self.product.id)

    def test_flow_trees_endpoint(self):
        other = Route.objects.create(product=self.product, name="About", path="/about")
        Connection.objects.create(product=self.product, source_route=self.route, destination_route=other)

        resp = self.client.get("/api/screens/flow-trees/", {"product_id": self.product.id})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["trees"][UNGROUPED][0]["id"], self.route.id)

        self.assertEqual(self.client.get("/api/screens/flow-trees/").status_code, 400)
        self.assertEqual(self.client.get("/api/screens/flow-trees/", {"product_id": 999}).status_code, 404)

    def test_flow_hierarchy_endpoint(self):
        parent = Flow.objects.create(product=self.product, name="Shop", step_count=2)
        Flow.objects.create(product=self.product, name="Cart", parent_flow=parent, level=1, step_count=1)
        Flow.objects.create(product=self.product, name="Empty", step_count=0)
        self.route.flow = parent
        self.route.save()

        resp = self.client.get("/api/screens/flows/", {"productId": self.product.id})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual([f["name"] for f in resp.data["flows"]], ["Shop"])
        self.assertEqual(resp.data["flows"][0]["children"][0]["name"], "Cart")
        self.assertEqual(resp.data["flows"][0]["screenCount"], 1)

        self.assertEqual(self.client.get("/api/screens/flows/").status_code, 400)

    def test_delete_flow_removes_routes_and_captures(self):
        flow = Flow.objects.create(product=self.product, name="Shop", step_count=1)
        self.route.flow = flow
        self.route.save()
        record_capture(self.route, _png(_white()))

        resp = self.client.delete(f"/api/screens/flows/{flow.id}/")

        self.assertEqual(resp.status_code, 200)
        self.assertFalse(Flow.objects.exists())
        self.assertFalse(Route.objects.exists())
        self.assertFalse(Capture.objects.exists())

    def test_delete_route(self):
        record_capture(self.route, _png(_white()))
        resp = self.client.delete(f"/api/screens/routes/{self.route.id}/")
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(Capture.objects.exists())
        self.assertEqual(self.client.delete(f"/api/screens/routes/{self.route.id}/").status_code, 404)

    def test_delete_component(self):
        component = Component.objects.create(product=self.product, name="Avatar")
        ComponentInstance.objects.create(component=component, route=self.route)

        resp = self.client.delete(f"/api/screens/components/{component.id}/")

        self.assertEqual(resp.status_code, 200)
        self.assertFalse(Component.objects.exists())
        self.assertFalse(ComponentInstance.objects.exists())
