class AccountError(Exception):
    pass


class AccountNotFoundError(AccountError):
    pass


class SelfDeletionError(AccountError):
    pass
