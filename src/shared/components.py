"""Process-wide collaborators shared by every router.

``create_app`` builds one ``Components`` and parks it on ``app.state``;
routes reach it through the ``get_components`` dependency so tests can
swap in fakes by constructing the app with their own instances.
"""

from dataclasses import dataclass

from fastapi import Request

from payments.gateway.port import PaymentGateway
from sessions.store import SessionStore
from shared.cache import TTLCache
from shared.config import GatewaySettings
from upstream.port import CommercePort, StoreCartPort


@dataclass
class Components:
    settings: GatewaySettings
    commerce: CommercePort
    store_cart: StoreCartPort
    sessions: SessionStore
    parent_cache: TTLCache
    gateway: PaymentGateway

    async def aclose(self) -> None:
        await self.commerce.aclose()
        await self.store_cart.aclose()


def get_components(request: Request) -> Components:
    return request.app.state.components
