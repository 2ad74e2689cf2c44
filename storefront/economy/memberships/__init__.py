from storefront.economy.memberships.credits import StoreCreditService
from storefront.economy.memberships.service import MembershipService

__all__ = ["MembershipService", "StoreCreditService"]
