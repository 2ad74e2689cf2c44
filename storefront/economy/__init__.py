from storefront.economy.accounts import AccountService
from storefront.economy.affiliates import AffiliateApplicationService
from storefront.economy.broadcasts import BroadcastService
from storefront.economy.commissions import CommissionService
from storefront.economy.memberships import MembershipService, StoreCreditService
from storefront.economy.orders import OrderPaymentService
from storefront.economy.payouts import PayoutService

__all__ = [
    "AccountService",
    "AffiliateApplicationService",
    "BroadcastService",
    "CommissionService",
    "MembershipService",
    "OrderPaymentService",
    "PayoutService",
    "StoreCreditService",
]
