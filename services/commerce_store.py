import asyncio
import logging
from decimal import Decimal

from pydantic import ValidationError

from enums.storage_key import StorageKey
from enums.store_event import StoreEvent
from exceptions.cart import InvalidQuantityException
from exceptions.storage import CorruptSnapshotException
from models.cart import CartLine, CartLineKey
from models.product import ProductDTO
from services.event_bus import EventBus
from services.storage import KeyValueStorage
from utils.sku import find_variant_sku, is_generated_sku

logger = logging.getLogger(__name__)

DEFAULT_SIZE = "standard"
DEFAULT_COLOR = "Default"


def _validate_quantity(product_id: str, quantity) -> None:
    # bool is an int subclass, True must not count as quantity 1
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidQuantityException(product_id, quantity)


class CommerceStore:
    """
    Sole owner of the local cart and wishlist.

    Every mutation runs under one lock per store and follows the same order:
    compute the new state as a copy, persist it, then swap the in-memory state
    and publish the change event. A failed write raises StorageWriteException
    and leaves the in-memory state untouched, so memory never runs ahead of
    durable storage.

    Both snapshots are read lazily on first access. A corrupt snapshot is
    logged and replaced by an empty cart / wishlist.
    """

    def __init__(self, storage: KeyValueStorage, event_bus: EventBus):
        self._storage = storage
        self._event_bus = event_bus
        self._lock = asyncio.Lock()
        self._cart: tuple[CartLine, ...] | None = None
        self._wishlist: tuple[str, ...] | None = None

    # -------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------
    async def _ensure_cart_loaded(self) -> tuple[CartLine, ...]:
        if self._cart is None:
            self._cart = await self._load_cart()
        return self._cart

    async def _ensure_wishlist_loaded(self) -> tuple[str, ...]:
        if self._wishlist is None:
            self._wishlist = await self._load_wishlist()
        return self._wishlist

    async def _load_cart(self) -> tuple[CartLine, ...]:
        try:
            data = await self._storage.read_json(StorageKey.CART)
        except CorruptSnapshotException as e:
            logger.warning(f"[Cart] Stored cart is not valid JSON, starting empty: {e.reason}")
            return ()
        if data is None:
            return ()
        if not isinstance(data, list):
            logger.warning(f"[Cart] Stored cart is a {type(data).__name__}, expected a list; starting empty")
            return ()
        try:
            lines = tuple(CartLine.model_validate(line) for line in data)
        except ValidationError as e:
            logger.warning(f"[Cart] Stored cart has invalid lines, starting empty: {e.error_count()} errors")
            return ()
        logger.debug(f"[Cart] Loaded {len(lines)} lines from storage")
        return lines

    async def _load_wishlist(self) -> tuple[str, ...]:
        try:
            data = await self._storage.read_json(StorageKey.WISHLIST)
        except CorruptSnapshotException as e:
            logger.warning(f"[Wishlist] Stored wishlist is not valid JSON, starting empty: {e.reason}")
            return ()
        if data is None:
            return ()
        if not isinstance(data, list):
            logger.warning(f"[Wishlist] Stored wishlist is a {type(data).__name__}, expected a list; starting empty")
            return ()
        # Older snapshots may hold numeric ids or duplicates
        product_ids = []
        for product_id in data:
            if product_id is None:
                continue
            product_id = str(product_id)
            if product_id not in product_ids:
                product_ids.append(product_id)
        return tuple(product_ids)

    # -------------------------------------------------------------------
    # Persist-then-apply
    # -------------------------------------------------------------------
    async def _commit_cart(self, lines: list[CartLine]) -> tuple[CartLine, ...]:
        if lines:
            await self._storage.write_json(StorageKey.CART, [line.model_dump(mode="json") for line in lines])
        else:
            await self._storage.remove(StorageKey.CART)
        self._cart = tuple(lines)
        self._event_bus.publish(StoreEvent.CART_UPDATED)
        return self._cart

    async def _commit_wishlist(self, product_ids: list[str]) -> tuple[str, ...]:
        if product_ids:
            await self._storage.write_json(StorageKey.WISHLIST, product_ids)
        else:
            await self._storage.remove(StorageKey.WISHLIST)
        self._wishlist = tuple(product_ids)
        self._event_bus.publish(StoreEvent.WISHLIST_UPDATED)
        return self._wishlist

    # -------------------------------------------------------------------
    # Cart
    # -------------------------------------------------------------------
    async def get_cart(self) -> tuple[CartLine, ...]:
        async with self._lock:
            return await self._ensure_cart_loaded()

    async def add_to_cart(
        self,
        product: ProductDTO,
        quantity: int = 1,
        size: str | None = None,
        color: str | None = None,
        product_type: str | None = None
    ) -> tuple[CartLine, ...]:
        """
        Add a product variant to the cart.

        The variant defaults to the product's first size and color and to its
        own type. If a line with the same product/size/color/type exists, its
        quantity is increased instead of adding a second line.

        Raises:
            InvalidQuantityException: quantity is not an integer >= 1
            StorageWriteException: cart could not be persisted (cart unchanged)
        """
        _validate_quantity(product.id, quantity)
        if quantity < 1:
            raise InvalidQuantityException(product.id, quantity)

        size = size or (product.sizes[0] if product.sizes else DEFAULT_SIZE)
        color = color or (product.colors[0] if product.colors else DEFAULT_COLOR)
        product_type = product_type or product.type
        key = CartLineKey(product.id, size, color, product_type)

        async with self._lock:
            lines = list(await self._ensure_cart_loaded())
            index = next((i for i, line in enumerate(lines) if line.key == key), None)

            if index is not None:
                existing = lines[index]
                sku = existing.sku
                if is_generated_sku(sku):
                    sku = find_variant_sku(product, color, size)
                lines[index] = existing.model_copy(update={"quantity": existing.quantity + quantity, "sku": sku})
                logger.info(
                    f"[Cart] Updated {product.id} ({size}/{color}) quantity "
                    f"{existing.quantity} -> {existing.quantity + quantity}"
                )
            else:
                lines.append(CartLine(
                    product_id=product.id,
                    name=product.name,
                    quantity=quantity,
                    unit_price=product.price,
                    selected_size=size,
                    selected_color=color,
                    selected_type=product_type,
                    sku=find_variant_sku(product, color, size)
                ))
                logger.info(f"[Cart] Added {product.id} ({size}/{color}) x{quantity}")

            return await self._commit_cart(lines)

    async def update_quantity(self, line_key: CartLineKey, quantity: int) -> tuple[CartLine, ...]:
        """
        Set the quantity of a line; zero or less removes it.

        An unknown line is a no-op: nothing is written and no event is published.
        """
        line_key = CartLineKey(*line_key)
        _validate_quantity(line_key.product_id, quantity)

        async with self._lock:
            lines = list(await self._ensure_cart_loaded())
            index = next((i for i, line in enumerate(lines) if line.key == line_key), None)
            if index is None:
                logger.debug(f"[Cart] update_quantity for unknown line {line_key}, ignoring")
                return self._cart

            if quantity <= 0:
                del lines[index]
                logger.info(f"[Cart] Removed {line_key.product_id} (quantity set to {quantity})")
            else:
                lines[index] = lines[index].model_copy(update={"quantity": quantity})
                logger.info(f"[Cart] Set {line_key.product_id} quantity to {quantity}")

            return await self._commit_cart(lines)

    async def remove_from_cart(self, line_key: CartLineKey) -> tuple[CartLine, ...]:
        line_key = CartLineKey(*line_key)
        async with self._lock:
            lines = list(await self._ensure_cart_loaded())
            remaining = [line for line in lines if line.key != line_key]
            if len(remaining) == len(lines):
                return self._cart
            logger.info(f"[Cart] Removed {line_key.product_id}")
            return await self._commit_cart(remaining)

    async def clear_cart(self) -> tuple[CartLine, ...]:
        async with self._lock:
            await self._ensure_cart_loaded()
            logger.info("[Cart] Cleared")
            return await self._commit_cart([])

    async def remove_ordered_lines(self, ordered: tuple[CartLine, ...]) -> tuple[CartLine, ...]:
        """
        Subtract an ordered cart snapshot from the current cart.

        Lines added or topped up after the snapshot was taken keep whatever
        was not part of the order.
        """
        ordered_quantities: dict[CartLineKey, int] = {}
        for line in ordered:
            ordered_quantities[line.key] = ordered_quantities.get(line.key, 0) + line.quantity

        async with self._lock:
            lines = list(await self._ensure_cart_loaded())
            remaining = []
            for line in lines:
                left = line.quantity - ordered_quantities.get(line.key, 0)
                if left == line.quantity:
                    remaining.append(line)
                elif left > 0:
                    remaining.append(line.model_copy(update={"quantity": left}))
            if remaining == lines:
                return self._cart
            logger.info(f"[Cart] Removed ordered lines, {len(remaining)} lines left")
            return await self._commit_cart(remaining)

    async def get_total_items(self) -> int:
        lines = await self.get_cart()
        return sum(line.quantity for line in lines)

    async def get_total_price(self) -> Decimal:
        lines = await self.get_cart()
        return sum((line.line_total for line in lines), Decimal("0"))

    # Synchronous views of the loaded state, for event listeners. Before the
    # first load they report an empty cart.
    @property
    def cart(self) -> tuple[CartLine, ...]:
        return self._cart or ()

    @property
    def total_items(self) -> int:
        return sum(line.quantity for line in self.cart)

    @property
    def total_price(self) -> Decimal:
        return sum((line.line_total for line in self.cart), Decimal("0"))

    # -------------------------------------------------------------------
    # Wishlist
    # -------------------------------------------------------------------
    async def get_wishlist(self) -> set[str]:
        async with self._lock:
            return set(await self._ensure_wishlist_loaded())

    async def is_in_wishlist(self, product_id: str) -> bool:
        return str(product_id) in await self.get_wishlist()

    async def toggle_wishlist(self, product_id: str) -> bool:
        """
        Add the product if absent, remove it if present.

        Returns:
            True when the product is in the wishlist afterwards
        """
        product_id = str(product_id)
        async with self._lock:
            product_ids = list(await self._ensure_wishlist_loaded())
            if product_id in product_ids:
                product_ids.remove(product_id)
                added = False
            else:
                product_ids.append(product_id)
                added = True
            await self._commit_wishlist(product_ids)
            logger.info(f"[Wishlist] {'Added' if added else 'Removed'} {product_id}")
            return added

    async def clear_wishlist(self) -> None:
        async with self._lock:
            await self._ensure_wishlist_loaded()
            await self._commit_wishlist([])
            logger.info("[Wishlist] Cleared")

    @property
    def wishlist(self) -> set[str]:
        return set(self._wishlist or ())
