"""
Domain exceptions.

Each exception carries the HTTP status it maps to; the handler in
payhub.main turns them into JSON responses.
"""


class PayHubError(Exception):
    """Base class for all domain errors."""

    status_code: int = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class OrderNotFound(PayHubError):
    """No order with the given id (404)."""

    status_code = 404

    def __init__(self, order_id: str) -> None:
        super().__init__(f"Order not found: {order_id}")
        self.order_id = order_id


class ProductNotFound(PayHubError):
    """No product with the given id (404)."""

    status_code = 404

    def __init__(self, product_id: str) -> None:
        super().__init__(f"Product not found: {product_id}")
        self.product_id = product_id


class UnsupportedProviderError(PayHubError):
    """Requested payment method is not registered (400)."""

    def __init__(self, method: object) -> None:
        super().__init__(f"Unsupported payment method: {method}")
        self.method = method


class InvalidOrderState(PayHubError):
    """Action not allowed in the order's current status (400)."""


class MissingPaymentReference(PayHubError):
    """Refund attempted without a stored provider payment id (400)."""

    def __init__(self, message: str = "Cannot refund: No valid payment method ID found") -> None:
        super().__init__(message)


class ProviderError(PayHubError):
    """External payment backend rejected or failed the call (502)."""

    status_code = 502

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        operation: str | None = None,
        outcome_unknown: bool = False,
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.operation = operation
        # Set on timeouts: the provider may still have applied the call
        self.outcome_unknown = outcome_unknown


class RefundFailed(ProviderError):
    """Provider refused or failed a refund (502)."""


class WebhookVerificationError(PayHubError):
    """Webhook signature or payload is invalid (400)."""


class AuthenticationError(PayHubError):
    """Bad credentials or bearer token (401)."""

    status_code = 401


class PermissionDenied(PayHubError):
    """Caller is authenticated but not allowed (403)."""

    status_code = 403

    def __init__(self, message: str = "Permission denied") -> None:
        super().__init__(message)


class EmailAlreadyRegistered(PayHubError):
    """Registration with an email that already exists (409)."""

    status_code = 409

    def __init__(self, email: str) -> None:
        super().__init__(f"Email already registered: {email}")
        self.email = email


class UserNotFound(PayHubError):
    """No user with the given id (404)."""

    status_code = 404

    def __init__(self, user_id: str) -> None:
        super().__init__(f"User not found: {user_id}")
        self.user_id = user_id
