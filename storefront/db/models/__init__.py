from storefront.db.models.affiliate_applications import AffiliateApplication
from storefront.db.models.commissions import Commission
from storefront.db.models.ledger_entries import LedgerEntry
from storefront.db.models.notifications import Notification
from storefront.db.models.orders import Order
from storefront.db.models.outbox_events import OutboxEvent
from storefront.db.models.payouts import Payout
from storefront.db.models.processed_webhook_events import ProcessedWebhookEvent
from storefront.db.models.products import Product
from storefront.db.models.push_tokens import PushToken
from storefront.db.models.users import User

__all__ = [
    "AffiliateApplication",
    "Commission",
    "LedgerEntry",
    "Notification",
    "Order",
    "OutboxEvent",
    "Payout",
    "ProcessedWebhookEvent",
    "Product",
    "PushToken",
    "User",
]
