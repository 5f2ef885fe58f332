"""Checkout, payment and account load test scenarios.

The checkout journey fills a Store API cart, turns it into an order,
re-submits the checkout (which must update the bound order, not create a
second one) and pays. The account user reads order history with a signed
bearer token.
"""

from locust import HttpUser, SequentialTaskSet, between, task

from loadtests.data_generators import (
    bearer_token,
    checkout_data,
    customer_id,
    payment_data,
    store_add_item_data,
)
from loadtests.helpers.response import extract_error_detail
from loadtests.helpers.state import CheckoutState


class CheckoutJourney(SequentialTaskSet):
    """Nonce -> Add item -> Checkout -> Checkout again (update) -> Pay.

    The happy path from an empty Store API cart to a processing order.
    Payments run through the simulated gateway, so a configured share of
    them is declined with a 402.
    """

    def on_start(self):
        self.state = CheckoutState()

    @task
    def issue_nonce(self):
        with self.client.get("/store/cart/nonce", catch_response=True, name="GET /store/cart/nonce") as resp:
            if resp.status_code == 200:
                self.state.store_cart.absorb(resp.json()["data"])
            else:
                resp.failure(f"Nonce failed: {resp.status_code} - {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def add_item(self):
        with self.client.post(
            "/store/cart/add-item",
            json=store_add_item_data(),
            headers=self.state.store_cart.headers(),
            catch_response=True,
            name="POST /store/cart/add-item",
        ) as resp:
            if resp.status_code == 200:
                self.state.store_cart.absorb(resp.json()["data"])
            else:
                resp.failure(f"Store add failed: {resp.status_code} - {extract_error_detail(resp)}")
                self.interrupt()

    def _checkout(self, name):
        with self.client.post(
            "/checkout",
            json=checkout_data(),
            headers=self.state.store_cart.headers(),
            catch_response=True,
            name=name,
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Checkout failed: {resp.status_code} - {extract_error_detail(resp)}")
                self.interrupt()
            order_id = resp.json()["order"]["id"]
            if self.state.order_id is not None and order_id != self.state.order_id:
                resp.failure(f"Checkout created a second order: {order_id} after {self.state.order_id}")
            self.state.order_id = order_id

    @task
    def create_order(self):
        self._checkout("POST /checkout")

    @task
    def update_order(self):
        self._checkout("POST /checkout [update]")

    @task
    def pay(self):
        with self.client.post(
            "/cart/process-payment",
            json=payment_data(self.state.order_id),
            headers=self.state.store_cart.headers(),
            catch_response=True,
            name="POST /cart/process-payment",
        ) as resp:
            if resp.status_code == 200:
                self.state.current_status = resp.json()["order"]["status"]
            elif resp.status_code == 402:
                # Simulated declines are part of the workload
                self.state.current_status = "declined"
                resp.success()
            else:
                resp.failure(f"Payment failed: {resp.status_code} - {extract_error_detail(resp)}")

    @task
    def done(self):
        self.interrupt()


class AccountUser(HttpUser):
    """Signed-in customers paging through their order history."""

    wait_time = between(1.0, 4.0)

    def on_start(self):
        self.customer_id = customer_id()
        self.headers = {"Authorization": f"Bearer {bearer_token(self.customer_id)}"}
        self.order_ids = []

    @task(3)
    def list_orders(self):
        with self.client.get(
            "/account/orders?page=1&per_page=10",
            headers=self.headers,
            catch_response=True,
            name="GET /account/orders",
        ) as resp:
            if resp.status_code == 200:
                self.order_ids = [order["id"] for order in resp.json()["data"]["orders"]]
            else:
                resp.failure(f"Order history failed: {resp.status_code} - {extract_error_detail(resp)}")

    @task(1)
    def view_order(self):
        if not self.order_ids:
            return
        with self.client.get(
            f"/account/orders/{self.order_ids[0]}",
            headers=self.headers,
            catch_response=True,
            name="GET /account/orders/{id}",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Order detail failed: {resp.status_code} - {extract_error_detail(resp)}")


class CheckoutUser(HttpUser):
    """Standalone checkout load."""

    wait_time = between(1.0, 3.0)
    tasks = [CheckoutJourney]
