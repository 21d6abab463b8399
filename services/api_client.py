import asyncio
import json
import logging
from decimal import Decimal
from typing import Any, TypeVar

import aiohttp
from pydantic import BaseModel, ValidationError

import config
from exceptions.api import (
    ApiException,
    ApiRequestRejectedException,
    ApiUnavailableException,
    InvalidApiResponseException,
    SessionExpiredException,
)
from models.checkout import PromoDTO
from models.contact import ContactMessageDTO
from models.order import OrderResponseDTO, OrdersResponseDTO, OrderTrackingDTO
from models.product import ProductDTO
from models.user import AuthResponseDTO, UserDTO

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_EXPIRED_TOKEN_MARKERS = ("expired token", "invalid or expired token", "jwt expired", "token expired")


def _is_expired_token_message(message: str | None) -> bool:
    if not message:
        return False
    message = message.lower()
    return any(marker in message for marker in _EXPIRED_TOKEN_MARKERS)


def _error_message(body: Any, status: int, reason: str | None) -> str:
    if isinstance(body, dict):
        for field in ("error", "message"):
            if body.get(field):
                return str(body[field])
    return f"HTTP {status}: {reason or 'error'}"


def _json_default(value):
    if isinstance(value, Decimal):
        return float(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class ApiClient:
    """
    HTTP client for the storefront commerce API.

    Every failure surfaces as an ApiException subclass:

        401 / "expired token"        -> SessionExpiredException   (re-login)
        other 4xx                    -> ApiRequestRejectedException
        5xx, transport, timeout      -> ApiUnavailableException   (retry)
        2xx with an unusable body    -> InvalidApiResponseException (retry)

    The bearer token is read when a request starts, so set_token() /
    remove_token() take effect for every call that has not started yet.
    Nothing is retried automatically.
    """

    def __init__(self, base_url: str = config.API_BASE_URL, timeout: float = config.HTTP_TIMEOUT_SECONDS):
        self.base_url = base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: aiohttp.ClientSession | None = None
        self._token: str | None = None

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                json_serialize=lambda obj: json.dumps(obj, default=_json_default)
            )
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    # -------------------------------------------------------------------
    # Token
    # -------------------------------------------------------------------
    @property
    def token(self) -> str | None:
        return self._token

    def set_token(self, token: str) -> None:
        self._token = token
        logger.debug("[API] Auth token set")

    def remove_token(self) -> None:
        if self._token is not None:
            logger.debug("[API] Auth token removed")
        self._token = None

    def _headers(self, authenticated: bool = True) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if authenticated and self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    # -------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------
    async def _request(
        self,
        method: str,
        endpoint: str,
        *,
        json_body: Any = None,
        params: dict[str, str] | None = None,
        authenticated: bool = True
    ) -> Any:
        url = f"{self.base_url}{endpoint}"
        headers = self._headers(authenticated)
        logger.debug(f"[API] {method} {endpoint}")

        try:
            async with self._get_session().request(
                method, url, json=json_body, params=params, headers=headers
            ) as response:
                status = response.status
                text = await response.text()
                reason = response.reason
        except asyncio.TimeoutError as e:
            logger.warning(f"[API] {method} {endpoint} timed out")
            raise ApiUnavailableException(endpoint, "request timed out") from e
        except aiohttp.ClientError as e:
            logger.warning(f"[API] {method} {endpoint} transport error: {e}")
            raise ApiUnavailableException(endpoint, str(e) or type(e).__name__) from e

        try:
            body = json.loads(text) if text else None
        except json.JSONDecodeError:
            body = None
            if 200 <= status < 300:
                logger.error(f"[API] {method} {endpoint} returned non-JSON body (status {status})")
                raise InvalidApiResponseException(endpoint, "response body is not valid JSON")

        if 200 <= status < 300:
            return body

        message = _error_message(body, status, reason)
        if status == 401 or (400 <= status < 500 and _is_expired_token_message(message)):
            logger.info(f"[API] {method} {endpoint} rejected the session ({status})")
            raise SessionExpiredException(endpoint, message)
        if 400 <= status < 500:
            logger.info(f"[API] {method} {endpoint} rejected with {status}: {message}")
            raise ApiRequestRejectedException(endpoint, status, message)

        logger.warning(f"[API] {method} {endpoint} failed with {status}: {message}")
        raise ApiUnavailableException(endpoint, message, status=status)

    @staticmethod
    def _parse(model: type[ModelT], body: Any, endpoint: str) -> ModelT:
        try:
            return model.model_validate(body)
        except ValidationError as e:
            logger.error(f"[API] {endpoint} response does not match {model.__name__}: {e.error_count()} errors")
            raise InvalidApiResponseException(endpoint, f"unexpected {model.__name__} shape") from e

    # -------------------------------------------------------------------
    # Auth
    # -------------------------------------------------------------------
    async def login(self, email: str, password: str) -> AuthResponseDTO:
        endpoint = "/auth/login"
        body = await self._request("POST", endpoint, json_body={"email": email, "password": password})
        return self._parse(AuthResponseDTO, body, endpoint)

    async def register(self, name: str, email: str, password: str) -> AuthResponseDTO:
        endpoint = "/auth/register"
        body = await self._request(
            "POST", endpoint, json_body={"name": name, "email": email, "password": password}
        )
        return self._parse(AuthResponseDTO, body, endpoint)

    async def get_profile(self) -> UserDTO:
        endpoint = "/user/profile"
        body = await self._request("GET", endpoint)
        # Some deployments wrap the profile in {"user": {...}}
        if isinstance(body, dict) and isinstance(body.get("user"), dict):
            body = body["user"]
        return self._parse(UserDTO, body, endpoint)

    # -------------------------------------------------------------------
    # Catalogue
    # -------------------------------------------------------------------
    async def get_products(self) -> list[ProductDTO]:
        endpoint = "/products"
        body = await self._request("GET", endpoint)
        if isinstance(body, dict):
            body = body.get("products")
        if not isinstance(body, list):
            raise InvalidApiResponseException(endpoint, "expected a list of products")
        return [self._parse(ProductDTO, product, endpoint) for product in body]

    async def get_product(self, product_id: str) -> ProductDTO:
        endpoint = f"/products/{product_id}"
        body = await self._request("GET", endpoint)
        if isinstance(body, dict) and isinstance(body.get("product"), dict):
            body = body["product"]
        return self._parse(ProductDTO, body, endpoint)

    async def check_inventory(self, color: str, size: str, product_type: str) -> dict:
        endpoint = "/inventory/check"
        body = await self._request(
            "GET", endpoint, params={"color": color, "size": size, "type": product_type}
        )
        if not isinstance(body, dict):
            raise InvalidApiResponseException(endpoint, "expected an object")
        return body

    # -------------------------------------------------------------------
    # Orders
    # -------------------------------------------------------------------
    async def get_orders(self, user_id: str | None = None) -> OrdersResponseDTO:
        endpoint = "/orders"
        params = {"userId": user_id} if user_id else None
        body = await self._request("GET", endpoint, params=params)
        if isinstance(body, list):
            body = {"orders": body}
        return self._parse(OrdersResponseDTO, body, endpoint)

    async def get_order(self, order_id: str) -> OrderResponseDTO:
        """
        Fetch one order, trying the guest endpoint first.

        Guest orders are readable without a token. When the guest lookup fails
        and a token is set, the authenticated endpoint is used instead;
        without a token the guest failure is raised.
        """
        guest_endpoint = f"/orders/{order_id}/guest"
        try:
            body = await self._request("GET", guest_endpoint, authenticated=False)
            return self._parse(OrderResponseDTO, body, guest_endpoint)
        except ApiException as e:
            if not self._token:
                raise
            logger.debug(f"[API] Guest lookup for order {order_id} failed ({type(e).__name__}), trying authenticated")

        endpoint = f"/orders/{order_id}"
        body = await self._request("GET", endpoint)
        return self._parse(OrderResponseDTO, body, endpoint)

    async def create_order(self, payload: dict) -> OrderResponseDTO:
        endpoint = "/orders"
        body = await self._request("POST", endpoint, json_body=payload)
        return self._parse(OrderResponseDTO, body, endpoint)

    async def get_order_tracking(self, order_id: str) -> OrderTrackingDTO:
        """
        Ask the server to refresh carrier tracking for an order.

        Best effort: transport and server failures come back as
        OrderTrackingDTO(error=...) instead of raising. An expired session
        still raises SessionExpiredException.
        """
        endpoint = f"/orders/{order_id}/tracking"
        try:
            body = await self._request("GET", endpoint)
            return self._parse(OrderTrackingDTO, body, endpoint)
        except SessionExpiredException:
            raise
        except ApiException as e:
            logger.warning(f"[API] Tracking refresh for order {order_id} failed: {e.message}")
            return OrderTrackingDTO(error=e.message)

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    async def create_payment_order(
        self, amount: Decimal | int, currency: str = config.CURRENCY, receipt: str | None = None
    ) -> dict:
        endpoint = "/payment/create-order"
        body = await self._request(
            "POST", endpoint, json_body={"amount": amount, "currency": currency, "receipt": receipt}
        )
        if not isinstance(body, dict):
            raise InvalidApiResponseException(endpoint, "expected an object")
        return body

    async def verify_payment(self, payment_data: dict) -> dict:
        endpoint = "/payment/verify"
        body = await self._request("POST", endpoint, json_body=payment_data)
        if not isinstance(body, dict):
            raise InvalidApiResponseException(endpoint, "expected an object")
        return body

    # -------------------------------------------------------------------
    # Promo / contact / health
    # -------------------------------------------------------------------
    async def validate_promo(self, code: str) -> PromoDTO:
        endpoint = "/promo/validate"
        body = await self._request("POST", endpoint, json_body={"code": code})
        if isinstance(body, dict) and isinstance(body.get("promo"), dict):
            body = body["promo"]
        return self._parse(PromoDTO, body, endpoint)

    async def submit_contact(self, message: ContactMessageDTO) -> dict:
        endpoint = "/contact"
        body = await self._request("POST", endpoint, json_body=message.model_dump(exclude_none=True))
        return body if isinstance(body, dict) else {}

    async def health_check(self) -> dict:
        endpoint = "/health"
        body = await self._request("GET", endpoint, authenticated=False)
        return body if isinstance(body, dict) else {}
