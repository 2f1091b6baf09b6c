"""
JSON-RPC connections to a Scalaris node

Requests are JSON-RPC 2.0 objects posted over HTTP/1.1 to the node's
JSON-RPC endpoint (``/jsonrpc.yaws`` by default) on a single persistent
stream. The stream itself is provided by a transport (plain TCP or TLS).
"""
from abc import ABC, abstractmethod
import http.client
import json
import logging
import socket
import ssl
import threading
from typing import Any, Dict, Optional

from exceptions import (
    ConnectionBusyError,
    ConnectionClosedError,
    ProtocolError,
    ProtocolErrorReason,
    RemoteError,
    TransportError,
    TransportErrorReason,
)
from models import ConnectionConfig, DEFAULT_LINK, RPCRequest, TransportType
from transport import SSLTransport, TCPTransport, Transport, build_ssl_context
from verify import Verifier, default_verifier, pinned_fingerprint_verifier


def _is_valid_link(link: str) -> bool:
    """The request path must be sendable as-is in an HTTP request line"""
    return all(0x21 <= ord(c) <= 0x7e for c in link)


class ConnectionInterface(ABC):
    """Abstract base class for all connections to a JSON-RPC endpoint"""

    @abstractmethod
    def exec_call(self, methodname: str, params: Any) -> Any:
        """
        Execute a remote call and return its result

        Args:
            methodname: Name of the remote method
            params: JSON value passed as the 'params' member

        Returns:
            The 'result' member of the response, unchanged
        """
        pass

    @abstractmethod
    def is_open(self) -> bool:
        """Check whether the connection is alive"""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close the connection"""
        pass

    @abstractmethod
    def get_port(self) -> int:
        """Return the server port of the connection"""
        pass

    def call(self, methodname: str, *args) -> Any:
        """Execute a remote call with positional parameters"""
        return self.exec_call(methodname, list(args))

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class JSONRPCConnection(ConnectionInterface):
    """
    JSON-RPC over HTTP on a stream opened by a transport

    The stream is opened in the constructor: an instance is either open or
    the constructor raised. Only one call may be in flight at a time.
    Closing the connection from another thread while a call is running is
    not supported.
    """

    def __init__(self, hostname: str, link: str = DEFAULT_LINK, port: Optional[int] = None,
                 timeout: Optional[float] = None, transport: Optional[Transport] = None):
        self._sock: Optional[socket.socket] = None
        self._http: Optional[http.client.HTTPConnection] = None

        if transport is None:
            raise ValueError("A transport is required")
        if not _is_valid_link(link):
            raise ValueError(f"Invalid JSON-RPC link {link!r}: only printable ASCII without spaces is allowed")

        self.hostname = hostname
        self.link = link.lstrip("/")
        self.transport = transport
        self.port = port if port is not None else transport.default_port
        self.timeout = timeout
        self.logger = logging.getLogger(f"connection.{hostname}")
        self._lock = threading.Lock()
        self._request_id = 0

        self._open()

    def _open(self):
        sock = self.transport.open(self.hostname, self.port, self.timeout)

        http_conn = http.client.HTTPConnection(self.hostname, self.port, timeout=self.timeout)
        # never reconnect behind the caller's back
        http_conn.auto_open = 0
        http_conn.default_port = self.transport.http_default_port
        http_conn.sock = sock

        self._sock = sock
        self._http = http_conn
        self.logger.debug(f"Connected to {self.hostname}:{self.port}/{self.link}")

    def is_open(self) -> bool:
        sock = self._sock
        if sock is None:
            return False
        try:
            return sock.fileno() != -1
        except (OSError, ValueError):
            return False

    def close(self) -> None:
        sock, self._sock = self._sock, None
        http_conn, self._http = self._http, None
        if sock is None:
            return

        self.logger.debug(f"Closing connection to {self.hostname}:{self.port}")
        if http_conn is not None:
            http_conn.sock = None
        self.transport.shutdown(sock)

    def get_port(self) -> int:
        return self.port

    def exec_call(self, methodname: str, params: Any) -> Any:
        if not self.is_open():
            raise ConnectionClosedError()
        if not self._lock.acquire(blocking=False):
            raise ConnectionBusyError()

        try:
            request = RPCRequest(method=methodname, params=params, id=self._request_id)
            self._request_id += 1
            self._send(request)
            status, body = self._receive()
            value = self._decode(status, body, request)
        finally:
            self._lock.release()

        return self.process_result(value)

    def _send(self, request: RPCRequest):
        payload = request.to_json()
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

        self.logger.debug(f"Calling {request.method} (id={request.id}) on /{self.link}")
        try:
            self._http.request("POST", f"/{self.link}", body=payload, headers=headers)
        except TimeoutError as e:
            self.close()
            raise TransportError(TransportErrorReason.TIMEOUT, f"timed out sending {request.method}") from e
        except (http.client.HTTPException, OSError) as e:
            self.close()
            raise TransportError(TransportErrorReason.WRITE, str(e)) from e

    def _receive(self):
        try:
            response = self._http.getresponse()
            body = response.read()
        except TimeoutError as e:
            self.close()
            raise TransportError(TransportErrorReason.TIMEOUT, "timed out waiting for response") from e
        except (http.client.IncompleteRead, http.client.RemoteDisconnected) as e:
            self.close()
            raise TransportError(TransportErrorReason.SHORT_READ, str(e)) from e
        except http.client.HTTPException as e:
            # the stream position is unknown now
            self.close()
            raise ProtocolError(ProtocolErrorReason.MALFORMED_RESPONSE, f"invalid HTTP response: {e!r}") from e
        except OSError as e:
            self.close()
            raise TransportError(TransportErrorReason.SHORT_READ, str(e)) from e

        self.logger.debug(f"Received HTTP {response.status} with {len(body)} bytes")

        if response.will_close:
            self.logger.debug("Server closed the connection after the response")
            self.close()

        return response.status, body

    def _decode(self, status: int, body: bytes, request: RPCRequest) -> Dict[str, Any]:
        try:
            value = json.loads(body.decode("utf-8"))
        except ValueError as e:
            raise ProtocolError(ProtocolErrorReason.MALFORMED_RESPONSE,
                                f"HTTP {status}: response is not valid JSON ({e})") from e

        if not isinstance(value, dict):
            raise ProtocolError(ProtocolErrorReason.MALFORMED_RESPONSE,
                                f"HTTP {status}: response is not a JSON object")

        response_id = value.get("id")
        if response_id is not None and response_id != request.id:
            self.close()
            raise ProtocolError(ProtocolErrorReason.MALFORMED_RESPONSE,
                                f"response id {response_id!r} does not match request id {request.id}")

        return value

    def process_result(self, value: Dict[str, Any]) -> Any:
        """
        Extract the result from a decoded JSON-RPC response

        Raises:
            RemoteError: if the response carries an error
            ProtocolError: if there is neither an error nor a result
        """
        if not isinstance(value, dict):
            raise ProtocolError(ProtocolErrorReason.MALFORMED_RESPONSE, "response is not a JSON object")

        error = value.get("error")
        if error is not None:
            if isinstance(error, dict):
                raise RemoteError(error.get("code"), error.get("message", ""), error.get("data"))
            raise RemoteError(None, str(error))

        if "result" not in value:
            raise ProtocolError(ProtocolErrorReason.MISSING_RESULT, "response has no 'result' member")

        return value["result"]

    def __del__(self):
        # may run on an instance whose constructor raised
        if getattr(self, "_sock", None) is not None:
            self.close()

    def __repr__(self):
        state = "open" if self.is_open() else "closed"
        return f"<{type(self).__name__} {self.hostname}:{self.port}/{self.link} {state}>"


class SSLConnection(JSONRPCConnection):
    """Represents a SSL connection to Scalaris to execute JSON-RPC requests"""

    def __init__(self, hostname: str, link: str = DEFAULT_LINK, port: Optional[int] = None,
                 timeout: Optional[float] = None, context: Optional[ssl.SSLContext] = None,
                 verifier: Optional[Verifier] = None):
        """
        Connect to a Scalaris node over TLS

        Args:
            hostname: Host name of the Scalaris node
            link: Path of the JSON-RPC endpoint
            port: Server port, 443 if None
            timeout: Socket timeout in seconds, None blocks indefinitely
            context: SSL context, a default verifying context if None
            verifier: Certificate verification callback

        Raises:
            TransportError: if the host cannot be resolved or reached
            TLSError: if the handshake or certificate verification fails
        """
        super().__init__(hostname, link, port, timeout, transport=SSLTransport(context, verifier))


class TCPConnection(JSONRPCConnection):
    """Represents a plain TCP connection to Scalaris to execute JSON-RPC requests"""

    def __init__(self, hostname: str, link: str = DEFAULT_LINK, port: Optional[int] = None,
                 timeout: Optional[float] = None):
        super().__init__(hostname, link, port, timeout, transport=TCPTransport())


def create_connection(config: ConnectionConfig) -> JSONRPCConnection:
    """
    Factory function to open the appropriate connection based on config

    Args:
        config: ConnectionConfig with connection-specific details

    Returns:
        Open connection
    """
    if config.transport_type == TransportType.TCP:
        return TCPConnection(config.hostname, config.link, config.port, config.timeout)

    elif config.transport_type == TransportType.SSL:
        context = build_ssl_context(
            ca_file=config.ca_file,
            cert_file=config.cert_file,
            key_file=config.key_file,
            check_hostname=config.check_hostname
        )
        if config.pinned_fingerprints:
            verifier = pinned_fingerprint_verifier(config.pinned_fingerprints)
        else:
            verifier = default_verifier
        return SSLConnection(config.hostname, config.link, config.port, config.timeout,
                             context=context, verifier=verifier)

    raise ValueError(f"Unsupported transport type: {config.transport_type}")
