"""
Exception types raised by Scalaris JSON-RPC connections
"""
from enum import Enum
from typing import Any, Optional


class TransportErrorReason(Enum):
    """Network-level failure categories"""
    RESOLUTION = "resolution"
    CONNECT = "connect"
    WRITE = "write"
    SHORT_READ = "short_read"
    TIMEOUT = "timeout"


class ProtocolErrorReason(Enum):
    """Ways a peer can violate the JSON-RPC contract"""
    MALFORMED_RESPONSE = "malformed_response"
    MISSING_RESULT = "missing_result"


class ScalarisError(Exception):
    """Base class for all errors raised by this package"""
    pass


class TransportError(ScalarisError):
    """Socket level failure (resolution, connect, write, read)"""

    def __init__(self, reason: TransportErrorReason, detail: str = ""):
        self.reason = reason
        self.detail = detail
        message = f"transport error ({reason.value})"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class TLSError(ScalarisError):
    """TLS handshake or certificate verification failure"""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"TLS error: {reason}")


class ProtocolError(ScalarisError):
    """The server answered something that is not a valid JSON-RPC response"""

    def __init__(self, reason: ProtocolErrorReason, detail: str = ""):
        self.reason = reason
        self.detail = detail
        message = f"protocol error ({reason.value})"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class RemoteError(ScalarisError):
    """Error reported by the server in the JSON-RPC 'error' member"""

    def __init__(self, code: Any, message: str, data: Optional[Any] = None):
        self.code = code
        self.message = message
        self.data = data
        super().__init__(f"remote error {code}: {message}")


class ConnectionClosedError(ScalarisError):
    """Call attempted on a connection that is not open"""

    def __init__(self, message: str = "connection is closed"):
        super().__init__(message)


class ConnectionBusyError(ScalarisError):
    """A second call was issued while another one is still in flight"""

    def __init__(self, message: str = "another call is already in progress on this connection"):
        super().__init__(message)


class OperationError(ScalarisError):
    """A key-value operation completed with status 'fail'"""

    def __init__(self, reason: str, key: Optional[str] = None):
        self.reason = reason
        self.key = key
        if key is not None:
            super().__init__(f"operation on '{key}' failed: {reason}")
        else:
            super().__init__(f"operation failed: {reason}")


class NotFoundError(OperationError):
    """The requested key does not exist"""
    pass


class AbortError(OperationError):
    """The operation was aborted by the store (e.g. a write conflict)"""
    pass
