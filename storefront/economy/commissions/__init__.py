from storefront.economy.commissions.service import CommissionService

__all__ = ["CommissionService"]
