import argparse
import asyncio

import config
from utils.config_validator import validate_or_exit
from utils.logging_config import setup_logging

validate_or_exit(config)
setup_logging()

from services.tracking import OrderTrackingView
from storefront import Storefront, create_storefront


async def show_cart(storefront: Storefront) -> None:
    lines = await storefront.store.get_cart()
    if not lines:
        print("Cart is empty")
        return
    for line in lines:
        variant = " / ".join(part for part in (line.selected_size, line.selected_color, line.selected_type) if part)
        print(f"{line.quantity} x {line.name or line.product_id} ({variant}) @ {line.unit_price} = {line.line_total}")
    summary = await storefront.checkout.get_summary()
    print(f"Items:    {await storefront.store.get_total_items()}")
    print(f"Subtotal: {summary.subtotal} {config.CURRENCY}")
    if summary.promo_code:
        print(f"Discount: -{summary.discount} ({summary.promo_code}, {summary.discount_percent}%)")
    print(f"Shipping: {summary.shipping}")
    print(f"GST:      {summary.tax}")
    print(f"Total:    {summary.total} {config.CURRENCY}")


async def show_wishlist(storefront: Storefront) -> None:
    product_ids = await storefront.store.get_wishlist()
    if not product_ids:
        print("Wishlist is empty")
        return
    for product_id in sorted(product_ids):
        print(product_id)


async def track_order(storefront: Storefront, order_id: str) -> int:
    view = OrderTrackingView(order_id)
    await storefront.tracking.load(view)
    if view.error:
        print(view.error)
        return 1

    order = view.order
    print(f"Order {order.id}: {order.status.value}")
    print(f"Tracking: {view.state.value}")
    if order.carrier_awb:
        print(f"AWB: {order.carrier_awb}")
    if order.carrier_status:
        print(f"Carrier status: {order.carrier_status}")
    if order.carrier_tracking_url:
        print(f"Tracking page: {order.carrier_tracking_url}")
    for tracking_event in order.sorted_tracking_events:
        when = tracking_event.timestamp.isoformat() if tracking_event.timestamp else "-"
        where = f" ({tracking_event.location})" if tracking_event.location else ""
        print(f"  {when}  {tracking_event.label}{where}")
    if view.visible_tracking_error:
        print(f"Tracking error: {view.visible_tracking_error}")
    return 0


async def main(args: argparse.Namespace) -> int:
    async with await create_storefront() as storefront:
        if args.command == "cart":
            await show_cart(storefront)
        elif args.command == "wishlist":
            await show_wishlist(storefront)
        elif args.command == "track":
            return await track_order(storefront, args.order_id)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="FeatherFold storefront client")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("cart", help="Show the local cart and checkout totals")
    subparsers.add_parser("wishlist", help="Show the local wishlist")
    track_parser = subparsers.add_parser("track", help="Load an order and refresh its carrier tracking")
    track_parser.add_argument("order_id")
    return parser


if __name__ == '__main__':
    exit(asyncio.run(main(build_parser().parse_args())))
