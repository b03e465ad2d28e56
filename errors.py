"""
Error kinds raised by the SplitEase services.

Each error carries the HTTP status the API boundary answers with, so route
handlers never have to translate them by hand.
"""

from typing import Optional


class SplitEaseError(Exception):
    status_code = 500
    message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.message
        super().__init__(self.message)


# 400
class ValidationError(SplitEaseError):
    status_code = 400
    message = "Missing required fields"


class InvalidContact(ValidationError):
    message = "Enter a valid phone number or email address"


class CodeInvalid(ValidationError):
    message = "Invalid or expired verification code"


class ChannelUnavailable(ValidationError):
    message = "Verification by this contact type is not available"


class Conflict(SplitEaseError):
    status_code = 400
    message = "Conflicting state"


class AccountExists(Conflict):
    message = "An account with this contact already exists"


class AlreadyUsed(Conflict):
    message = "Payment already processed"


# 404
class NotFound(SplitEaseError):
    status_code = 404
    message = "Not found"


class AccountNotFound(NotFound):
    message = "No account found for this contact"


class UserNotFound(NotFound):
    message = "User not found"


# 410
class Gone(SplitEaseError):
    status_code = 410
    message = "No longer available"


class LinkUsed(Gone):
    message = "This payment link has already been used"


class LinkExpired(Gone):
    message = "This payment link has expired"


# 401 / 403
class AuthError(SplitEaseError):
    status_code = 401
    message = "Authentication required"


class TokenMissing(AuthError):
    message = "Access token required"


class TokenInvalid(AuthError):
    status_code = 403
    message = "Invalid token"


class TokenExpired(AuthError):
    status_code = 403
    message = "Token expired"


# 500
class InternalError(SplitEaseError):
    pass


class NotificationError(InternalError):
    message = "Failed to send verification code"
