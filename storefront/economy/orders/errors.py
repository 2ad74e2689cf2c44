class OrderError(Exception):
    pass


class OrderNotFoundError(OrderError):
    pass
