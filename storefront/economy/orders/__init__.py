from storefront.economy.orders.service import OrderPaymentService

__all__ = ["OrderPaymentService"]
