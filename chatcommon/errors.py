class ChatError(Exception):
    """Base class for every error raised by the chat core."""
    pass


class InvalidKeySize(ChatError, ValueError):
    """Raised when key material is not exactly 32 bytes."""
    pass


class MalformedEnvelope(ChatError):
    """Raised when an envelope is too short to hold a nonce and a tag."""
    pass


class AuthenticationFailed(ChatError):
    """Raised when the GCM tag does not verify (tampering or wrong key)."""
    pass


class TransportDecodeError(ChatError):
    """Raised when inbound transport text is not URL-safe Base64."""
    pass


class ConnectFailed(ChatError):
    """Raised when the TCP connection to the server cannot be opened."""
    pass


class TransportError(ChatError):
    """Raised when the socket fails after the connection was established."""
    pass


class FramingError(ChatError):
    """Raised when a length-prefixed frame header is invalid."""
    pass


class SessionStateError(ChatError):
    """Raised when a session operation is called in the wrong handshake state."""
    pass
