from locust import HttpUser, task, between
import random

PASSWORD = "secret123"


def _signup(client, role):
    email = f"{role}_{random.randint(1, 1_000_000_000)}@example.com"
    client.post("/api/users/register", json={"name": email.split("@")[0], "email": email, "password": PASSWORD, "role": role})
    r = client.post("/api/users/login", json={"email": email, "password": PASSWORD})
    if r.status_code != 200:
        return None
    return {"Authorization": f"Bearer {r.json()['token']}"}


class SupplyChainUser(HttpUser):
    """A manufacturer/retailer pair that registers a product and sells it, while customers verify it."""
    wait_time = between(0.1, 0.5)

    def on_start(self):
        self.product_id = None
        manufacturer = _signup(self.client, "manufacturer")
        self.retailer = _signup(self.client, "retailer")
        if not manufacturer:
            return
        serial = f"SN-{random.randint(1, 1_000_000_000)}"
        r = self.client.post("/api/products/register", json={"name": "Load Test Watch", "serialNumber": serial}, headers=manufacturer)
        if r.status_code == 201:
            self.product_id = r.json()["id"]

    @task(3)
    def verify_product(self):
        if not self.product_id:
            return
        self.client.get(f"/api/products/{self.product_id}", name="/api/products/[id]")
        self.client.get(f"/api/sales/history/{self.product_id}", name="/api/sales/history/[id]")

    @task(1)
    def record_sale(self):
        if not self.product_id or not self.retailer:
            return
        self.client.post("/api/sales/record", json={"productId": self.product_id, "customer": "Load Tester"}, headers=self.retailer)
