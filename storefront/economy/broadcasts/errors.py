class BroadcastError(Exception):
    pass


class InvalidBroadcastTargetError(BroadcastError):
    pass


class NoActiveDevicesError(BroadcastError):
    pass
