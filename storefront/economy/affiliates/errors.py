class AffiliateApplicationError(Exception):
    pass


class ApplicantNotFoundError(AffiliateApplicationError):
    pass


class AlreadyAffiliateError(AffiliateApplicationError):
    pass


class ApplicationNotFoundError(AffiliateApplicationError):
    pass


class ApplicationAlreadyDecidedError(AffiliateApplicationError):
    def __init__(self, current_status: str) -> None:
        super().__init__(current_status)
        self.current_status = current_status


class InvalidApplicationDecisionError(AffiliateApplicationError):
    pass


class AffiliateCodeAllocationError(AffiliateApplicationError):
    pass
