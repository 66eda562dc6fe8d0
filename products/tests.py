from django.test import TestCase
from rest_framework.test import APIClient

from screens.models import Capture, Component, ComponentInstance, Connection, Route

from .models import Product


class ProductAPITests(TestCase):
    def setUp(self):
        self.client = APIClient()

    def test_create_public_product_drops_credentials(self):
        resp = self.client.post(
            "/api/products/",
            {
                "name": "Publix",
                "staging_url": "https://staging.publix.example.com",
                "login_email": "qa@example.com",
                "login_password": "secret",
            },
            format="json",
        )
        self.assertEqual(resp.status_code, 201, resp.data)
        self.assertTrue(resp.data["success"])
        self.assertNotIn("login_password", resp.data["product"])

        product = Product.objects.get()
        self.assertEqual(product.auth_state, Product.AUTH_PUBLIC)
        self.assertIsNone(product.login_email)
        self.assertIsNone(product.login_password)

    def test_authenticated_product_requires_credentials(self):
        resp = self.client.post(
            "/api/products/",
            {"name": "Portal", "staging_url": "https://portal.example.com", "auth_state": "authenticated"},
            format="json",
        )
        self.assertEqual(resp.status_code, 400)
        self.assertFalse(Product.objects.exists())

        resp = self.client.post(
            "/api/products/",
            {
                "name": "Portal",
                "staging_url": "https://portal.example.com",
                "auth_state": "authenticated",
                "login_email": "qa@example.com",
                "login_password": "secret",
            },
            format="json",
        )
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(Product.objects.get().login_password, "secret")

    def test_list_only_shows_active_products(self):
        Product.objects.create(name="Live", staging_url="https://live.example.com")
        Product.objects.create(name="Archived", staging_url="https://old.example.com", status="i")

        resp = self.client.get("/api/products/")

        self.assertEqual(resp.status_code, 200)
        self.assertEqual([p["name"] for p in resp.data["products"]], ["Live"])

    def test_delete_cascades(self):
        product = Product.objects.create(name="Shop", staging_url="https://shop.example.com")
        route = Route.objects.create(product=product, name="Home", path="/")
        Capture.objects.create(route=route, screenshot_url="/media/a.png")

        resp = self.client.delete(f"/api/products/{product.id}/")

        self.assertEqual(resp.status_code, 200)
        self.assertFalse(Route.objects.exists())
        self.assertFalse(Capture.objects.exists())
        self.assertEqual(self.client.get(f"/api/products/{product.id}/").status_code, 404)

    def test_screen_url(self):
        product = Product(name="Shop", staging_url="https://shop.example.com/")
        self.assertEqual(product.screen_url("/cart"), "https://shop.example.com/cart")
        self.assertEqual(product.screen_url(""), "https://shop.example.com")


class ProductDashboardTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.product = Product.objects.create(name="Shop", staging_url="https://shop.example.com")
        self.home = Route.objects.create(product=self.product, name="Home", path="/", flow_name="Browse")
        self.cart = Route.objects.create(product=self.product, name="Checkout - Cart", path="/cart", flow_name="Checkout")
        self.pay = Route.objects.create(product=self.product, name="Checkout - Pay", path="/pay", flow_name="Checkout")
        Connection.objects.create(product=self.product, source_route=self.home, destination_route=self.cart)
        Connection.objects.create(product=self.product, source_route=self.cart, destination_route=self.pay)

        Capture.objects.create(route=self.home, screenshot_url="/media/h1.png")
        Capture.objects.create(
            route=self.home,
            screenshot_url="/media/h2.png",
            has_changes=True,
            diff_percentage=3.5,
            change_summary="3.50% of pixels changed",
        )
        avatar = Component.objects.create(product=self.product, name="Avatar")
        ComponentInstance.objects.create(component=avatar, route=self.home)
        ComponentInstance.objects.create(component=avatar, route=self.home)
        ComponentInstance.objects.create(component=avatar, route=self.cart)

    def test_dashboard_payload(self):
        resp = self.client.get(f"/api/products/{self.product.id}/dashboard/")
        self.assertEqual(resp.status_code, 200)
        data = resp.data

        self.assertEqual([r["id"] for r in data["routes"]], [self.home.id, self.cart.id, self.pay.id])
        self.assertEqual(data["routes"][0]["captures"][0]["screenshot_url"], "/media/h2.png")
        self.assertEqual(data["changes_count"], 1)
        self.assertIsNotNone(data["latest_capture_at"])
        self.assertEqual(data["flows"], ["Browse", "Checkout"])
        self.assertEqual(len(data["connections"]), 2)

        component = data["components"][0]
        self.assertEqual(component["instance_count"], 3)
        self.assertEqual(component["screen_count"], 2)

        self.assertEqual(data["trees"]["Checkout"][0]["id"], self.cart.id)
        self.assertEqual(data["breadcrumbs"], {"Checkout": "Browse"})
        self.assertEqual(data["ancestry"][str(self.pay.id)], ["Cart"])

    def test_unknown_product(self):
        self.assertEqual(self.client.get("/api/products/999/dashboard/").status_code, 404)
