from storefront.economy.affiliates.service import AffiliateApplicationService

__all__ = ["AffiliateApplicationService"]
