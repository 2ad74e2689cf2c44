from storefront.economy.broadcasts.service import BroadcastService

__all__ = ["BroadcastService"]
