from storefront.economy.payouts.service import PayoutService

__all__ = ["PayoutService"]
