import random
from locust import HttpUser, task, between, events

BASE_URL = "http://127.0.0.1:8080"

BRANDS = {
    "Google": ["pixel-8-128", "pixel-7a", "pixel-fold"],
    "Apple": ["iphone-13-128", "iphone-14-pro", "ipad-air-5"],
    "Samsung": ["galaxy-s23", "galaxy-a54"],
    "Dell": ["latitude-5420", "xps-13-9310"],
}


def random_product():
    brand = random.choice(list(BRANDS))
    sku = random.choice(BRANDS[brand])
    return brand, f"{brand.lower()}-{sku}"


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("=" * 60)
    print("Trending load test: beacons + storefront/admin reads")
    print("=" * 60)


@events.test_stop.add_listener
def on_test_stop(environment, **kwargs):
    print("\n" + "=" * 60)
    print("Load test finished")
    print("=" * 60)


class ShopperBeacon(HttpUser):

    wait_time = between(0.5, 2)

    host = BASE_URL

    @task(10)
    def product_view(self):
        brand, product_id = random_product()
        self._track({"type": "product_view", "productId": product_id, "brand": brand}, "product_view")

    @task(4)
    def result_click(self):
        brand, product_id = random_product()
        self._track({"type": "result_click", "productId": product_id, "brand": brand}, "result_click")

    @task(2)
    def search(self):
        brand, product_id = random_product()
        self._track(
            {"type": "search", "productId": product_id, "brand": brand, "searchTerm": brand.lower()},
            "search",
        )

    @task(2)
    def junk_beacon(self):
        self._track({"type": "product_view", "productId": "undefined-unknown"}, "junk")

    def _track(self, body, label):
        with self.client.post(
                "/api/v1/trending/track",
                json=body,
                catch_response=True,
                name=f"POST /trending/track ({label})"
        ) as response:
            if response.status_code == 200:
                response.success()
            else:
                response.failure(f"Status code: {response.status_code}")


class StorefrontReader(HttpUser):

    wait_time = between(1, 3)
    host = BASE_URL

    weight = 3

    @task(10)
    def popular_strip(self):
        with self.client.get(
                "/api/v1/trending?limit=5",
                catch_response=True,
                name="GET /trending (popular strip)"
        ) as response:
            if response.status_code != 200:
                response.failure(f"Status code: {response.status_code}")
                return
            try:
                data = response.json()
            except ValueError:
                response.failure("Invalid JSON response")
                return
            if "trending" in data:
                response.success()
            else:
                response.failure("Missing trending list")

    @task(3)
    def brand_strip(self):
        brand = random.choice(list(BRANDS))
        self.client.get(f"/api/v1/trending?limit=5&brand={brand}", name="GET /trending?brand=")


class AdminDashboard(HttpUser):

    wait_time = between(5, 10)
    host = BASE_URL

    weight = 1

    @task(5)
    def forced_refresh(self):
        self.client.get("/api/v1/trending?limit=20&force=true", name="GET /trending?force=true")

    @task(1)
    def debug_metrics(self):
        self.client.post("/api/v1/trending", json={"action": "debugMetrics"}, name="POST /trending (debugMetrics)")
