from storefront.workers.tasks.affiliates import run_affiliate_auto_approve
from storefront.workers.tasks.memberships import run_membership_expiry, run_monthly_credit_drop
from storefront.workers.tasks.notifications import run_push_delivery
from storefront.workers.tasks.promotions import run_ad_expiry
from storefront.workers.tasks.webhook_recovery import run_webhook_replay

__all__ = [
    "run_ad_expiry",
    "run_affiliate_auto_approve",
    "run_membership_expiry",
    "run_monthly_credit_drop",
    "run_push_delivery",
    "run_webhook_replay",
]
