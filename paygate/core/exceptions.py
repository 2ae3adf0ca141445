"""
Error taxonomy for the payment service.

Every domain error carries a human readable ``detail``, a stable machine
``code`` and the HTTP status the API layer should answer with. The DRF
exception handler in ``paygate.core.api.exception_handler`` renders them;
services raise them and never build HTTP responses themselves.

Usage:
    raise NotFoundError(f"Plan {plan_id} not found")
    raise ConfigError("No gateway policy for region_4", code="missing_policy")
"""


class PaygateError(Exception):
    """Base class for all payment service errors."""

    status_code = 500
    default_code = "error"

    def __init__(self, detail: str = "", code: str | None = None):
        self.detail = detail or self.__class__.__name__
        self.code = code or self.default_code
        super().__init__(self.detail)


class ValidationError(PaygateError):
    """Caller supplied missing or malformed input. Nothing was changed."""

    status_code = 400
    default_code = "invalid"


class NotFoundError(PaygateError):
    """A referenced country, plan, payment or subscription does not exist."""

    status_code = 404
    default_code = "not_found"


class ConfigError(PaygateError):
    """
    Stored configuration is missing or contradictory.

    Examples: a region with no gateway policy, a ``*_only`` policy whose
    enabled flags disagree, a plan with no provider price id. These are
    operator problems and are never silently defaulted.
    """

    status_code = 500
    default_code = "configuration"


class SignatureError(PaygateError):
    """A webhook failed signature or freshness verification."""

    status_code = 401
    default_code = "invalid_signature"


class ProviderError(PaygateError):
    """Stripe or Paddle rejected a call or could not be reached."""

    status_code = 502
    default_code = "provider_error"


class PersistenceError(PaygateError):
    """The database refused a write; webhook callers should retry."""

    status_code = 500
    default_code = "persistence"
