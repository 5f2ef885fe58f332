"""Storefront gateway FastAPI application.

Backend-for-frontend between the storefront and WooCommerce: the legacy
cart-as-order endpoints, the Store-Cart pass-through, checkout, simulated
payments and the signed-in customer's order history.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

import asyncio
import contextlib
from contextlib import asynccontextmanager
from datetime import timedelta

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from identity.api.routes import router as account_router
from ordering.api.routes import cart_router, checkout_router, store_cart_router
from payments.api.routes import payment_router
from payments.gateway.fake_adapter import SimulatedGateway
from payments.gateway.port import PaymentGateway
from sessions.expiry import sweep_expired_sessions
from sessions.store import InMemorySessionStore, SessionStore
from shared.cache import TTLCache
from shared.components import Components
from shared.config import GatewaySettings, load_settings
from shared.handlers import register_exception_handlers
from shared.logging import add_context, clear_context, configure_logging
from upstream import build_upstreams
from upstream.port import CommercePort, StoreCartPort

logger = structlog.get_logger(__name__)


def build_components(
    settings: GatewaySettings,
    commerce: CommercePort | None = None,
    store_cart: StoreCartPort | None = None,
    sessions: SessionStore | None = None,
    gateway: PaymentGateway | None = None,
) -> Components:
    if commerce is None or store_cart is None:
        default_commerce, default_store_cart = build_upstreams(settings.commerce, settings.currency)
        if commerce is None:
            commerce = default_commerce
        if store_cart is None:
            store_cart = default_store_cart
    if gateway is None:
        gateway = SimulatedGateway(
            delay_seconds=settings.payments.delay_seconds,
            decline_rate=settings.payments.decline_rate,
        )
    return Components(
        settings=settings,
        commerce=commerce,
        store_cart=store_cart,
        # An empty store is falsy (it defines __len__)
        sessions=sessions if sessions is not None else InMemorySessionStore(),
        parent_cache=TTLCache(capacity=settings.cache.capacity, ttl_seconds=settings.cache.ttl_seconds),
        gateway=gateway,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the session sweeper; close upstream clients on shutdown."""
    components: Components = app.state.components
    sweeper = asyncio.create_task(
        sweep_expired_sessions(
            components.sessions,
            ttl=timedelta(hours=components.settings.sessions.ttl_hours),
            interval_seconds=components.settings.sessions.sweep_interval_seconds,
        )
    )
    logger.info(
        "Gateway started",
        env=components.settings.env,
        commerce_backend=components.settings.commerce.backend,
    )
    try:
        yield
    finally:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
        await components.aclose()
        logger.info("Gateway stopped")


def create_app(
    settings: GatewaySettings | None = None,
    commerce: CommercePort | None = None,
    store_cart: StoreCartPort | None = None,
    sessions: SessionStore | None = None,
    gateway: PaymentGateway | None = None,
    configure_logs: bool = True,
) -> FastAPI:
    settings = settings or load_settings()
    if configure_logs:
        configure_logging()

    app = FastAPI(
        title="Storefront Gateway",
        description="Cart, checkout and order history over WooCommerce",
        lifespan=lifespan,
    )
    app.state.components = build_components(settings, commerce, store_cart, sessions, gateway)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors.allow_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next):
        """Bind session id, method and path to every log line of the request."""
        clear_context()
        add_context(
            session_id=request.headers.get("x-session-id"),
            method=request.method,
            path=request.url.path,
        )
        try:
            return await call_next(request)
        finally:
            clear_context()

    register_exception_handlers(app)

    # -----------------------------------------------------------------------
    # Routers
    # -----------------------------------------------------------------------
    app.include_router(cart_router)
    app.include_router(store_cart_router)
    app.include_router(checkout_router)
    app.include_router(payment_router)
    app.include_router(account_router)

    # -----------------------------------------------------------------------
    # Health / root
    # -----------------------------------------------------------------------
    @app.get("/health")
    async def health():
        return JSONResponse(
            content={
                "status": "ok",
                "env": settings.env,
                "commerce_backend": settings.commerce.backend,
            }
        )

    return app


app = create_app()
