"""
Single-operation key-value API on top of a Scalaris JSON-RPC connection
"""
import base64
import logging
from typing import Any, Dict

from connection import ConnectionInterface
from exceptions import (
    AbortError,
    NotFoundError,
    OperationError,
    ProtocolError,
    ProtocolErrorReason,
)


def encode_value(value: Any) -> Dict[str, Any]:
    """Wrap a value in the JSON-RPC value encoding of Scalaris"""
    if isinstance(value, (bytes, bytearray)):
        return {"type": "as_bin", "value": base64.b64encode(bytes(value)).decode("ascii")}
    return {"type": "as_is", "value": value}


def decode_value(encoded: Any) -> Any:
    """Unwrap a value returned by Scalaris"""
    if not isinstance(encoded, dict) or "type" not in encoded or "value" not in encoded:
        raise ProtocolError(ProtocolErrorReason.MALFORMED_RESPONSE, f"invalid encoded value: {encoded!r}")

    if encoded["type"] == "as_is":
        return encoded["value"]
    if encoded["type"] == "as_bin":
        try:
            return base64.b64decode(encoded["value"], validate=True)
        except (TypeError, ValueError) as e:
            raise ProtocolError(ProtocolErrorReason.MALFORMED_RESPONSE, f"invalid binary value: {e}") from e

    raise ProtocolError(ProtocolErrorReason.MALFORMED_RESPONSE, f"unknown value type: {encoded['type']!r}")


class TransactionSingleOp:
    """Executes single read/write operations, each in its own transaction"""

    def __init__(self, connection: ConnectionInterface):
        self.connection = connection
        self.logger = logging.getLogger("client")

    def read(self, key: str) -> Any:
        """
        Read the value stored at key

        Raises:
            NotFoundError: if the key does not exist
            AbortError: if the read could not be completed
        """
        self.logger.debug(f"Reading '{key}'")
        result = self.connection.exec_call("read", [key])
        self._check_status(result, key)
        if "value" not in result:
            raise ProtocolError(ProtocolErrorReason.MALFORMED_RESPONSE, "read result has no value")
        return decode_value(result["value"])

    def write(self, key: str, value: Any) -> None:
        """
        Store value at key

        Raises:
            AbortError: if the write transaction was aborted
        """
        self.logger.debug(f"Writing '{key}'")
        result = self.connection.exec_call("write", [key, encode_value(value)])
        self._check_status(result, key)

    def nop(self, value: Any = "ok") -> Any:
        """No operation, the server echoes 'ok'. Useful as a liveness ping"""
        return self.connection.exec_call("nop", [value])

    def close(self) -> None:
        self.connection.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @staticmethod
    def _check_status(result: Any, key: str):
        if not isinstance(result, dict) or "status" not in result:
            raise ProtocolError(ProtocolErrorReason.MALFORMED_RESPONSE, f"invalid operation result: {result!r}")

        if result["status"] == "ok":
            return
        if result["status"] != "fail":
            raise ProtocolError(ProtocolErrorReason.MALFORMED_RESPONSE, f"unknown status: {result['status']!r}")

        reason = result.get("reason", "unknown")
        if reason == "not_found":
            raise NotFoundError(reason, key)
        if reason == "abort":
            raise AbortError(reason, key)
        raise OperationError(reason, key)
