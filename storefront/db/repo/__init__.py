from storefront.db.repo.affiliate_applications_repo import AffiliateApplicationsRepo
from storefront.db.repo.commissions_repo import CommissionsRepo
from storefront.db.repo.ledger_repo import LedgerRepo
from storefront.db.repo.notifications_repo import NotificationsRepo
from storefront.db.repo.orders_repo import OrdersRepo
from storefront.db.repo.outbox_events_repo import OutboxEventsRepo
from storefront.db.repo.payouts_repo import PayoutsRepo
from storefront.db.repo.processed_webhook_events_repo import ProcessedWebhookEventsRepo
from storefront.db.repo.products_repo import ProductsRepo
from storefront.db.repo.push_tokens_repo import PushTokensRepo
from storefront.db.repo.users_repo import UsersRepo

__all__ = [
    "AffiliateApplicationsRepo",
    "CommissionsRepo",
    "LedgerRepo",
    "NotificationsRepo",
    "OrdersRepo",
    "OutboxEventsRepo",
    "PayoutsRepo",
    "ProcessedWebhookEventsRepo",
    "ProductsRepo",
    "PushTokensRepo",
    "UsersRepo",
]
