"""Storefront Gateway Load Testing: Locust entry point.

Imports every user class so Locust can discover them.
Run specific scenarios with Locust's class selection.

Usage:
    # All scenarios (web UI):
    locust -f loadtests/locustfile.py --host http://localhost:8000

    # Mixed workload only:
    locust -f loadtests/locustfile.py MixedWorkloadUser

    # Headless (CI mode):
    locust -f loadtests/locustfile.py MixedWorkloadUser --headless \
           -u 50 -r 5 -t 300s --csv=results/loadtest

Product ids come from LOADTEST_PRODUCTS; account tokens are signed with
JWT_SECRET (see loadtests/data_generators.py).
"""

import logging
import time

import requests
from locust import events

# Import all user classes so Locust discovers them
from loadtests.helpers.response import extract_error_detail
from loadtests.scenarios.cart import CartUser  # noqa: F401
from loadtests.scenarios.checkout import AccountUser, CheckoutUser  # noqa: F401
from loadtests.scenarios.mixed import MixedWorkloadUser  # noqa: F401

logger = logging.getLogger("loadtest")


@events.request.add_listener
def on_request(request_type, name, response, exception, **_kw):
    """Log error details for every failed request.

    Fires globally for all scenarios, no per-task wiring needed.
    Extracts the gateway error body so you see "Failed to add to cart
    (product_invalid)" instead of just "500".
    """
    if exception:
        logger.error("[EXCEPTION] %s %s: %s", request_type, name, exception)
    elif response is not None and response.status_code >= 400:
        detail = extract_error_detail(response)
        logger.error("[%s] %s %s: %s", response.status_code, request_type, name, detail)


@events.test_start.add_listener
def on_test_start(environment, **_kwargs):
    """Log a marker and the gateway's health when the load test begins."""
    print(f"\n[LOADTEST] Started at {time.strftime('%H:%M:%S')}")
    print(f"[LOADTEST] Target host: {environment.host}")
    try:
        health = requests.get(f"{environment.host}/health", timeout=5).json()
        print(f"[LOADTEST] Gateway env: {health.get('env')}, backend: {health.get('commerce_backend')}")
    except (requests.RequestException, ValueError) as e:
        print(f"[LOADTEST] Could not reach the gateway health endpoint: {e}")
    print()


@events.test_stop.add_listener
def on_test_stop(**_kwargs):
    """Log a marker when the load test ends."""
    print(f"\n[LOADTEST] Stopped at {time.strftime('%H:%M:%S')}\n")
