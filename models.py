"""
Data models for the Scalaris JSON-RPC client
"""
import hashlib
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


DEFAULT_LINK = "jsonrpc.yaws"
DEFAULT_SSL_PORT = 443
DEFAULT_TCP_PORT = 8000
JSONRPC_VERSION = "2.0"


class TransportType(Enum):
    """How the connection reaches the server"""
    SSL = "ssl"
    TCP = "tcp"


@dataclass
class ConnectionConfig:
    """Configuration for a connection to a Scalaris node"""
    name: str
    hostname: str
    transport_type: TransportType = TransportType.SSL
    link: str = DEFAULT_LINK
    port: Optional[int] = None  # None selects the transport default
    timeout: Optional[float] = None  # None blocks indefinitely
    ca_file: Optional[str] = None  # For SSL: trust anchors, system store if None
    cert_file: Optional[str] = None  # For SSL: client certificate
    key_file: Optional[str] = None  # For SSL: client certificate key
    check_hostname: bool = True
    pinned_fingerprints: List[str] = field(default_factory=list)
    active: bool = True


@dataclass
class RPCRequest:
    """A single JSON-RPC request"""
    method: str
    params: Any
    id: int

    def to_payload(self) -> Dict[str, Any]:
        return {
            "jsonrpc": JSONRPC_VERSION,
            "method": self.method,
            "params": self.params,
            "id": self.id,
        }

    def to_json(self) -> bytes:
        return json.dumps(self.to_payload()).encode("utf-8")


@dataclass
class CertificateInfo:
    """A peer certificate as seen by the verification callback"""
    depth: int  # 0 is the server's own certificate
    der: Optional[bytes] = None
    peer: Optional[Dict[str, Any]] = None  # decoded fields, leaf only
    error: Optional[str] = None  # set when the TLS stack rejected the chain

    @property
    def fingerprint(self) -> Optional[str]:
        """SHA-256 fingerprint of the DER encoding as lowercase hex"""
        if self.der is None:
            return None
        return hashlib.sha256(self.der).hexdigest()

    @property
    def subject(self) -> str:
        """Common name of the subject if known"""
        if not self.peer:
            return ""
        for rdn in self.peer.get("subject", ()):
            for key, value in rdn:
                if key == "commonName":
                    return value
        return ""
