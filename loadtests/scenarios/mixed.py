"""Mixed storefront workload scenario.

Combines the cart, checkout and account journeys with weights that model
storefront traffic. This is the recommended scenario for load baseline
testing.
"""

from locust import HttpUser, between

from loadtests.scenarios.cart import LegacyCartJourney, StoreCartJourney
from loadtests.scenarios.checkout import CheckoutJourney


class MixedWorkloadUser(HttpUser):
    """Realistic mixed workload simulating concurrent storefront activity.

    Weight distribution:

    - Store API cart browsing and abandonment: most common
    - Checkout through payment: conversion
    - Legacy cart-as-order flow: least frequent, but each add rewrites a
      pending order upstream, so it dominates Commerce API writes

    Creates concurrent pressure on the session registry and on the
    pending-order scan the legacy cart performs on every add.
    """

    wait_time = between(0.5, 3.0)
    tasks = {
        StoreCartJourney: 6,
        CheckoutJourney: 3,
        LegacyCartJourney: 2,
    }
