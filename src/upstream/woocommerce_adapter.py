"""WooCommerce adapters for the Commerce REST API and the Store API.

Both wrap a single ``httpx.AsyncClient`` each. Calls are awaited inside the
request handler that issued them; there are no retries and no timeout beyond
httpx's default, because order mutations have no exactly-once guarantee
upstream.
"""

from typing import Any

import httpx
import structlog

from shared.config import CommerceSettings
from shared.errors import UpstreamError
from upstream.cookies import parse_set_cookie
from upstream.port import CommercePort, Page, StoreCartPort, StoreCartResult

logger = structlog.get_logger(__name__)

NONCE_HEADERS = ("nonce", "x-wc-store-api-nonce")


def _body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


def _int_header(response: httpx.Response, name: str) -> int:
    try:
        return int(response.headers.get(name, 0))
    except ValueError:
        return 0


class WooCommerceClient(CommercePort):
    """Commerce REST API (``/wp-json/wc/v3``) authenticated with a consumer key/secret pair."""

    def __init__(self, settings: CommerceSettings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._client = httpx.AsyncClient(
            base_url=settings.rest_base_url,
            auth=(settings.consumer_key, settings.consumer_secret),
            headers={"Accept": "application/json"},
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.error("Commerce API unreachable", method=method, path=path, error=str(exc))
            raise UpstreamError(f"Commerce API request failed: {method} {path}", payload=str(exc)) from exc

        if response.is_error:
            payload = _body(response)
            logger.warning(
                "Commerce API returned an error",
                method=method,
                path=path,
                status=response.status_code,
                payload=payload,
            )
            raise UpstreamError(
                f"Commerce API request failed: {method} {path}",
                upstream_status=response.status_code,
                payload=payload,
            )
        return response

    async def list_orders(self, **params: Any) -> Page:
        response = await self._request("GET", "orders", params=params)
        return Page(
            items=response.json(),
            total=_int_header(response, "x-wp-total"),
            total_pages=_int_header(response, "x-wp-totalpages"),
        )

    async def get_order(self, order_id: int) -> dict:
        response = await self._request("GET", f"orders/{order_id}")
        return response.json()

    async def create_order(self, payload: dict) -> dict:
        response = await self._request("POST", "orders", json=payload)
        return response.json()

    async def update_order(self, order_id: int, payload: dict) -> dict:
        response = await self._request("PUT", f"orders/{order_id}", json=payload)
        return response.json()

    async def delete_order(self, order_id: int) -> dict:
        response = await self._request("DELETE", f"orders/{order_id}", params={"force": "true"})
        return response.json()

    async def get_product(self, product_id: int) -> dict:
        response = await self._request("GET", f"products/{product_id}")
        return response.json()


class StoreApiClient(StoreCartPort):
    """Store API (``/wp-json/wc/store/v1``) addressed with a forwarded nonce and cookie jar.

    Failures are proxied: the gateway answers with the Store API's own status.
    """

    def __init__(self, settings: CommerceSettings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._client = httpx.AsyncClient(
            base_url=settings.store_base_url,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _call(
        self,
        method: str,
        path: str,
        nonce: str | None,
        cookie_header: str,
        json: dict | None = None,
    ) -> StoreCartResult:
        headers = {"Nonce": nonce or "", "Cookie": cookie_header or ""}
        try:
            response = await self._client.request(method, path, headers=headers, json=json)
        except httpx.HTTPError as exc:
            logger.error("Store API unreachable", method=method, path=path, error=str(exc))
            raise UpstreamError(f"Store API request failed: {method} {path}", payload=str(exc), proxied=True) from exc
        finally:
            # The jar belongs to the session registry, never to the shared client
            self._client.cookies.clear()

        if response.is_error:
            payload = _body(response)
            logger.warning(
                "Store API returned an error",
                method=method,
                path=path,
                status=response.status_code,
                payload=payload,
            )
            message = payload.get("message") if isinstance(payload, dict) else None
            raise UpstreamError(
                message or f"Store API request failed: {method} {path}",
                upstream_status=response.status_code,
                payload=payload,
                proxied=True,
            )

        rotated = next((response.headers[name] for name in NONCE_HEADERS if name in response.headers), None)
        return StoreCartResult(
            data=_body(response),
            nonce=rotated,
            cookies=parse_set_cookie(response.headers.get_list("set-cookie")),
        )

    async def get_cart(self, nonce: str | None, cookie_header: str) -> StoreCartResult:
        return await self._call("GET", "cart", nonce, cookie_header)

    async def add_item(
        self,
        product_id: int,
        quantity: int,
        variation: list[dict] | None,
        nonce: str | None,
        cookie_header: str,
    ) -> StoreCartResult:
        body: dict[str, Any] = {"id": product_id, "quantity": quantity}
        if variation:
            body["variation"] = variation
        return await self._call("POST", "cart/add-item", nonce, cookie_header, json=body)

    async def update_item(self, key: str, quantity: int, nonce: str | None, cookie_header: str) -> StoreCartResult:
        body = {"key": key, "quantity": quantity}
        return await self._call("POST", "cart/update-item", nonce, cookie_header, json=body)

    async def remove_item(self, key: str, nonce: str | None, cookie_header: str) -> StoreCartResult:
        return await self._call("POST", "cart/remove-item", nonce, cookie_header, json={"key": key})

    async def clear(self, nonce: str | None, cookie_header: str) -> StoreCartResult:
        return await self._call("DELETE", "cart/items", nonce, cookie_header)
