class CommissionError(Exception):
    pass


class CommissionUserNotFoundError(CommissionError):
    pass


class CommissionNotPayableError(CommissionError):
    """Raised before any commission row or balance is touched."""


class UnsupportedCurrencyError(CommissionNotPayableError):
    pass


class InvalidReferralMetadataError(CommissionNotPayableError):
    pass
