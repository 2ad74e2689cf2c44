class PayoutError(Exception):
    pass


class InvalidPayoutAmountError(PayoutError):
    pass


class PayoutAffiliateNotFoundError(PayoutError):
    pass


class InsufficientBalanceError(PayoutError):
    pass


class PayoutNotFoundError(PayoutError):
    pass


class PayoutStateConflictError(PayoutError):
    pass
