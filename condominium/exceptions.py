from django.core.exceptions import ObjectDoesNotExist, ValidationError


class LedgerValidationError(ValidationError):
    """Rejected input. Raised before anything is written."""

    @property
    def reason(self) -> str:
        return "; ".join(self.messages)


class InvalidShareError(LedgerValidationError):
    pass


class InvalidInstallmentCountError(LedgerValidationError):
    pass


class InvalidPaymentError(LedgerValidationError):
    pass


class ProjectValidationError(LedgerValidationError):
    pass


class ProjectLockedError(LedgerValidationError):
    pass


class LedgerNotFoundError(ObjectDoesNotExist):
    """A referenced row does not exist (stale reference, not bad input)."""


class InstallmentNotFoundError(LedgerNotFoundError):
    pass


class ProjectNotFoundError(LedgerNotFoundError):
    pass


class ApartmentNotFoundError(LedgerNotFoundError):
    pass


class BuildingNotFoundError(LedgerNotFoundError):
    pass


class AllocationConsistencyError(RuntimeError):
    pass
