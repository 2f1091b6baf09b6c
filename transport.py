"""
Transport providers: open a connected byte stream to a Scalaris node
"""
from abc import ABC, abstractmethod
import http.client
import logging
import socket
import ssl
from pathlib import Path
from typing import List, Optional

from exceptions import TLSError, TransportError, TransportErrorReason
from models import CertificateInfo, DEFAULT_SSL_PORT, DEFAULT_TCP_PORT
from verify import Verifier, default_verifier


# Upper bound for waiting on the peer's close_notify
SHUTDOWN_TIMEOUT = 2.0


def build_ssl_context(ca_file: Optional[str] = None, cert_file: Optional[str] = None,
                      key_file: Optional[str] = None, check_hostname: bool = True) -> ssl.SSLContext:
    """
    Create a client SSL context that verifies the server certificate

    Args:
        ca_file: PEM bundle of trusted CAs. The system trust store is used if None
        cert_file: Client certificate (PEM), for servers requiring client auth
        key_file: Private key for cert_file, if not contained in it
        check_hostname: Match the server certificate against the host name

    Returns:
        Configured SSL context

    Raises:
        FileNotFoundError: If one of the given files does not exist
    """
    for path in (ca_file, cert_file, key_file):
        if path and not Path(path).exists():
            raise FileNotFoundError(f"TLS file not found: {path}")

    context = ssl.create_default_context(ssl.Purpose.SERVER_AUTH, cafile=ca_file)
    context.minimum_version = ssl.TLSVersion.TLSv1_2
    context.check_hostname = check_hostname

    if cert_file:
        context.load_cert_chain(certfile=cert_file, keyfile=key_file)

    return context


class Transport(ABC):
    """Abstract base class for stream transports"""

    default_port: int
    # port left out of the Host header
    http_default_port = http.client.HTTP_PORT

    def __init__(self):
        self.logger = logging.getLogger(f"transport.{type(self).__name__}")

    @abstractmethod
    def open(self, hostname: str, port: int, timeout: Optional[float]) -> socket.socket:
        """
        Open a connected stream

        Raises:
            TransportError: on resolution or connect failures
            TLSError: on handshake failures (TLS transports only)
        """
        pass

    @abstractmethod
    def shutdown(self, sock: socket.socket) -> None:
        """Release the stream, never raises"""
        pass

    def _connect(self, hostname: str, port: int, timeout: Optional[float]) -> socket.socket:
        """Resolve and connect a TCP socket"""
        self.logger.debug(f"Connecting to {hostname}:{port}")
        try:
            return socket.create_connection((hostname, port), timeout=timeout)
        except socket.gaierror as e:
            raise TransportError(TransportErrorReason.RESOLUTION, f"cannot resolve {hostname}: {e}") from e
        except OSError as e:
            raise TransportError(TransportErrorReason.CONNECT, f"cannot connect to {hostname}:{port}: {e}") from e


class TCPTransport(Transport):
    """Plain TCP transport"""

    default_port = DEFAULT_TCP_PORT

    def open(self, hostname: str, port: int, timeout: Optional[float]) -> socket.socket:
        return self._connect(hostname, port, timeout)

    def shutdown(self, sock: socket.socket) -> None:
        try:
            if sock.fileno() != -1:
                sock.shutdown(socket.SHUT_RDWR)
        except OSError as e:
            self.logger.debug(f"Socket shutdown failed: {e}")
        finally:
            sock.close()


class SSLTransport(Transport):
    """TLS over TCP, with a verification callback run for every certificate"""

    default_port = DEFAULT_SSL_PORT
    http_default_port = http.client.HTTPS_PORT

    def __init__(self, context: Optional[ssl.SSLContext] = None, verifier: Optional[Verifier] = None):
        super().__init__()
        self.context = context or build_ssl_context()
        self.verifier = verifier or default_verifier

    def open(self, hostname: str, port: int, timeout: Optional[float]) -> socket.socket:
        raw = self._connect(hostname, port, timeout)

        try:
            sock = self.context.wrap_socket(raw, server_hostname=hostname)
        except ssl.SSLCertVerificationError as e:
            raw.close()
            message = getattr(e, "verify_message", None) or str(e)
            # The stack's rejection is final, the callback only observes it
            try:
                self.verifier(False, CertificateInfo(depth=0, error=message))
            except Exception as callback_error:
                self.logger.debug(f"Verification callback failed on rejected chain: {callback_error!r}")
            raise TLSError(f"certificate verification failed: {message}") from e
        except ssl.SSLError as e:
            raw.close()
            raise TLSError(f"handshake failed: {e}") from e
        except TimeoutError as e:
            raw.close()
            raise TLSError("handshake timed out") from e
        except OSError as e:
            raw.close()
            raise TLSError(f"handshake aborted by peer: {e}") from e

        try:
            rejected_depth = self._run_verifier(sock)
        except Exception as e:
            sock.close()
            raise TLSError(f"verification callback failed: {e!r}") from e
        if rejected_depth is not None:
            sock.close()
            raise TLSError(f"certificate at depth {rejected_depth} rejected by verification callback")

        self.logger.debug(f"TLS session established with {hostname}:{port} ({sock.version()})")
        return sock

    def _run_verifier(self, sock: ssl.SSLSocket) -> Optional[int]:
        """Call the verifier for each certificate, root first; return the rejected depth"""
        preverified = self.context.verify_mode != ssl.CERT_NONE
        chain = self._peer_chain(sock) or [None]
        peer = sock.getpeercert() or None

        for depth in reversed(range(len(chain))):
            cert = CertificateInfo(depth=depth, der=chain[depth], peer=peer if depth == 0 else None)
            if not self.verifier(preverified, cert):
                return depth
        return None

    @staticmethod
    def _peer_chain(sock: ssl.SSLSocket) -> List[Optional[bytes]]:
        """DER certificates presented by the server, leaf first"""
        get_verified_chain = getattr(sock, "get_verified_chain", None)
        if get_verified_chain is not None:
            chain = get_verified_chain()
            if chain:
                return list(chain)
        leaf = sock.getpeercert(binary_form=True)
        return [leaf] if leaf else []

    def shutdown(self, sock: socket.socket) -> None:
        try:
            if sock.fileno() != -1:
                sock.settimeout(SHUTDOWN_TIMEOUT)
                sock.unwrap()
        except (OSError, ValueError) as e:
            self.logger.debug(f"TLS shutdown failed: {e}")
        finally:
            sock.close()
