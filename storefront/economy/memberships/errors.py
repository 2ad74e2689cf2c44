class MembershipError(Exception):
    pass


class MembershipUserNotFoundError(MembershipError):
    pass


class InvalidTrialGrantError(MembershipError):
    pass


class StoreCreditError(Exception):
    pass


class StoreCreditUserNotFoundError(StoreCreditError):
    pass


class InvalidStoreCreditAmountError(StoreCreditError):
    pass


class StoreCreditWouldGoNegativeError(StoreCreditError):
    pass
