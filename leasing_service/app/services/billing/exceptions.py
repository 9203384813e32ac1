from shared.utils.app_status_code import AppStatusCode


class BillingError(Exception):
    """Base class for billing failures surfaced to callers."""

    status_code = AppStatusCode.OPERATION_FAILED
    http_status = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(BillingError):
    """Lease terms cannot be billed (bad interval, negative amount, bad dates)."""

    status_code = AppStatusCode.BILLING_CONFIGURATION_INVALID
    http_status = 422


class DuplicatePeriodError(BillingError):
    """A live invoice already exists for (lease, period_start)."""

    status_code = AppStatusCode.BILLING_DUPLICATE_PERIOD
    http_status = 409

    def __init__(self, lease_id, period_start):
        super().__init__(
            f"Invoice already exists for lease {lease_id} period {period_start}")
        self.lease_id = lease_id
        self.period_start = period_start


class InvalidReadingError(BillingError):
    status_code = AppStatusCode.BILLING_INVALID_READING


class PendingItemsError(BillingError):
    status_code = AppStatusCode.BILLING_PENDING_ITEMS
    http_status = 409


class InvalidTransitionError(BillingError):
    status_code = AppStatusCode.BILLING_INVALID_TRANSITION
    http_status = 409


class NotFoundError(BillingError):
    status_code = AppStatusCode.NOT_FOUND
    http_status = 404
