import logging

from sqlalchemy.ext.asyncio import AsyncEngine

from db import create_engine_and_session_maker, create_db_and_tables
from services.api_client import ApiClient
from services.auth_session import AuthSession
from services.checkout import CheckoutService
from services.commerce_store import CommerceStore
from services.contact import ContactService
from services.event_bus import EventBus
from services.storage import KeyValueStorage
from services.tracking import OrderTrackingReconciler

logger = logging.getLogger(__name__)


class Storefront:
    """
    One instance of every client component, wired together.

    Build it with create_storefront() and close() it on shutdown; nothing in
    the project reaches for module-level singletons.
    """

    def __init__(
        self,
        engine: AsyncEngine,
        storage: KeyValueStorage,
        event_bus: EventBus,
        store: CommerceStore,
        api_client: ApiClient,
        auth: AuthSession,
        checkout: CheckoutService,
        contact: ContactService,
        tracking: OrderTrackingReconciler
    ):
        self.engine = engine
        self.storage = storage
        self.event_bus = event_bus
        self.store = store
        self.api_client = api_client
        self.auth = auth
        self.checkout = checkout
        self.contact = contact
        self.tracking = tracking

    async def close(self) -> None:
        await self.api_client.close()
        await self.engine.dispose()
        logger.info("[Storefront] Closed")

    async def __aenter__(self) -> "Storefront":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


async def create_storefront(database_url: str | None = None, api_client: ApiClient | None = None) -> Storefront:
    engine, session_maker = create_engine_and_session_maker(database_url)
    await create_db_and_tables(engine, session_maker)

    storage = KeyValueStorage(session_maker)
    event_bus = EventBus()
    store = CommerceStore(storage, event_bus)
    api_client = api_client or ApiClient()
    auth = AuthSession(storage, api_client)
    await auth.restore()

    storefront = Storefront(
        engine=engine,
        storage=storage,
        event_bus=event_bus,
        store=store,
        api_client=api_client,
        auth=auth,
        checkout=CheckoutService(store, storage, api_client),
        contact=ContactService(api_client),
        tracking=OrderTrackingReconciler(api_client)
    )
    logger.info(f"[Storefront] Ready (API: {api_client.base_url})")
    return storefront
