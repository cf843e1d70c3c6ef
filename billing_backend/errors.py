class BillingError(Exception):
    """Base class for failures surfaced to API callers."""


class ConfigValidationError(BillingError):
    """Connection settings are missing, malformed or unsafe to interpolate."""


class UpstreamError(BillingError):
    """The billing data source failed (simulated timeout or warehouse query)."""
