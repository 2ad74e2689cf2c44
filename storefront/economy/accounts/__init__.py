from storefront.economy.accounts.service import AccountService

__all__ = ["AccountService"]
