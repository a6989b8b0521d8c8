class DeliveryError(Exception):
    """Business-rule or client error surfaced to the caller as JSON."""

    code = 'ERROR'
    status = 400
    message = 'request failed'

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        if message:
            self.message = message

    def to_dict(self):
        return {'error': self.code, 'message': self.message}


class BadRequestError(DeliveryError):
    code = 'BAD_REQUEST'
    message = 'malformed request'


class UnauthorizedError(DeliveryError):
    code = 'UNAUTHORIZED'
    status = 401
    message = 'login required'


class ForbiddenError(DeliveryError):
    code = 'FORBIDDEN'
    status = 403
    message = 'insufficient role'


class NotFoundError(DeliveryError):
    code = 'NOT_FOUND'
    status = 404
    message = 'package not found'


class InvalidStateError(DeliveryError):
    code = 'INVALID_STATE'
    status = 409
    message = 'package is not awaiting pickup'


class InvalidTokenError(DeliveryError):
    code = 'INVALID_TOKEN'
    message = 'invalid or unknown code'


class AlreadyUsedError(DeliveryError):
    code = 'ALREADY_USED'
    status = 409
    message = 'code already used'


class ExpiredError(DeliveryError):
    code = 'EXPIRED'
    status = 409
    message = 'code expired'


class AlreadyDeliveredError(DeliveryError):
    code = 'ALREADY_DELIVERED'
    status = 409
    message = 'package already delivered'


class RateLimitedError(DeliveryError):
    code = 'RATE_LIMITED'
    status = 429
    message = 'too many attempts, try again later'
