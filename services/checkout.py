import logging
from decimal import Decimal, ROUND_HALF_UP

from pydantic import ValidationError

import config
from enums.storage_key import StorageKey
from exceptions.api import ApiRequestRejectedException, InvalidApiResponseException
from exceptions.cart import EmptyCartException
from exceptions.checkout import InvalidPromoCodeException
from exceptions.storage import CorruptSnapshotException
from models.cart import CartLine
from models.checkout import CheckoutSummaryDTO, PromoDTO
from models.order import OrderDTO, ShippingAddressDTO
from models.user import UserDTO
from services.api_client import ApiClient
from services.commerce_store import CommerceStore
from services.storage import KeyValueStorage

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
GUEST_USER_ID = "guest"


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _whole(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class CheckoutService:
    """
    Turns the local cart into a server order.

    Pricing mirrors the web checkout: the promo discount comes off the
    subtotal first, GST and the free-shipping threshold apply to what is
    left.
    """

    def __init__(self, store: CommerceStore, storage: KeyValueStorage, api_client: ApiClient):
        self._store = store
        self._storage = storage
        self._api_client = api_client
        self.tax_rate_percent = Decimal(str(config.TAX_RATE_PERCENT))
        self.standard_shipping_fee = Decimal(str(config.STANDARD_SHIPPING_FEE))
        self.free_shipping_threshold = Decimal(str(config.FREE_SHIPPING_THRESHOLD))

    # -------------------------------------------------------------------
    # Promo
    # -------------------------------------------------------------------
    async def load_promo(self) -> PromoDTO | None:
        try:
            raw = await self._storage.read_json(StorageKey.PROMO)
            return PromoDTO.model_validate(raw) if raw is not None else None
        except (CorruptSnapshotException, ValidationError) as e:
            logger.warning(f"[Checkout] Stored promo is unreadable, ignoring it: {e}")
            return None

    async def apply_promo(self, code: str | None) -> PromoDTO:
        """
        Validate a promo code with the server and remember it for checkout.

        Raises:
            InvalidPromoCodeException: code is blank (nothing is sent)
            ApiRequestRejectedException: server refused the code; any saved promo is dropped
        """
        if not code or not code.strip():
            raise InvalidPromoCodeException(code)
        code = code.strip().upper()

        try:
            promo = await self._api_client.validate_promo(code)
        except ApiRequestRejectedException:
            logger.info(f"[Checkout] Promo code {code} rejected")
            await self._storage.remove(StorageKey.PROMO)
            raise

        await self._storage.write_json(
            StorageKey.PROMO, {"code": promo.code, "percent": float(promo.discount_percent)}
        )
        logger.info(f"[Checkout] Promo {promo.code} applied ({promo.discount_percent}%)")
        return promo

    async def remove_promo(self) -> None:
        await self._storage.remove(StorageKey.PROMO)

    # -------------------------------------------------------------------
    # Pricing
    # -------------------------------------------------------------------
    def summarize(self, lines: tuple[CartLine, ...], promo: PromoDTO | None = None) -> CheckoutSummaryDTO:
        subtotal = sum((line.line_total for line in lines), Decimal("0"))
        discount_percent = promo.discount_percent if promo else Decimal("0")
        discount = subtotal * discount_percent / 100
        taxable = max(Decimal("0"), subtotal - discount)
        shipping = Decimal("0") if taxable >= self.free_shipping_threshold else self.standard_shipping_fee
        tax = taxable * self.tax_rate_percent / 100

        return CheckoutSummaryDTO(
            subtotal=_money(subtotal),
            shipping=_money(shipping),
            tax=_money(tax),
            discount=_money(discount),
            total=_money(taxable + tax + shipping),
            promo_code=promo.code if promo else None,
            discount_percent=discount_percent
        )

    async def get_summary(self) -> CheckoutSummaryDTO:
        return self.summarize(await self._store.get_cart(), await self.load_promo())

    # -------------------------------------------------------------------
    # Order
    # -------------------------------------------------------------------
    async def place_order(
        self,
        user: UserDTO | None,
        shipping_address: ShippingAddressDTO | dict,
        payment_method: str,
        payment_id: str | None = None
    ) -> OrderDTO:
        """
        Create the server order from a snapshot of the cart.

        Only after the server has accepted the order are the ordered lines
        taken out of the cart and the promo cleared. Lines added while the
        request was in flight stay in the cart.

        Raises:
            EmptyCartException: nothing to order
            ApiException: order creation failed (cart untouched)
        """
        lines = await self._store.get_cart()
        if not lines:
            raise EmptyCartException()

        if isinstance(shipping_address, dict):
            shipping_address = ShippingAddressDTO.model_validate(shipping_address)
        promo = await self.load_promo()
        summary = self.summarize(lines, promo)

        payload = {
            "items": [
                {
                    "productId": line.product_id,
                    "name": line.name,
                    "size": line.selected_size,
                    "color": line.selected_color,
                    "sku": line.sku,
                    "price": line.unit_price,
                    "quantity": line.quantity,
                }
                for line in lines
            ],
            "userId": user.id if user else GUEST_USER_ID,
            "shippingAddress": shipping_address.model_dump(mode="json", exclude_none=True),
            "paymentMethod": payment_method,
            "paymentId": payment_id,
            "total": _whole(summary.total),
            "promoCode": summary.promo_code,
            "discountPercent": summary.discount_percent if promo else None,
            "discountAmount": _whole(summary.discount),
        }

        response = await self._api_client.create_order(payload)
        if response.order is None:
            raise InvalidApiResponseException("/orders", "order missing from create response")

        await self._store.remove_ordered_lines(lines)
        await self.remove_promo()
        logger.info(
            f"[Checkout] Order {response.order.id} placed: {len(lines)} lines, "
            f"total {summary.total} {config.CURRENCY}, payment {payment_method}"
        )
        return response.order
