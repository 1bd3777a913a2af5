"""Exceptions raised by the chat store, coordinator and auth layer.

Each carries the HTTP status a REST router should answer with; the
realtime coordinator sends the message back as an ``error`` event.
"""


class LiveChatError(Exception):
    """Base exception for live support errors."""

    status_code = 500

    def __init__(self, message: str = "Server error"):
        self.message = message
        super().__init__(message)


class ChatNotFoundError(LiveChatError):
    status_code = 404

    def __init__(self, message: str = "Chat not found"):
        super().__init__(message)


class ChatNotAvailableError(LiveChatError):
    """Raised when an agent tries to accept a chat that is no longer pending."""

    status_code = 409

    def __init__(self, message: str = "Chat not available or already taken"):
        super().__init__(message)


class ChatClosedError(LiveChatError):
    status_code = 409

    def __init__(self, message: str = "Chat has already ended"):
        super().__init__(message)


class PermissionDeniedError(LiveChatError):
    status_code = 403

    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


class InvalidRequestError(LiveChatError):
    status_code = 400


class AuthenticationError(LiveChatError):
    status_code = 401

    def __init__(self, message: str = "Authentication error"):
        super().__init__(message)
