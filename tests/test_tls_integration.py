"""
End-to-end tests of SSLConnection against a real TLS JSON-RPC server
"""
import ssl
import tempfile
import unittest
import os
import sys
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))
from client import TransactionSingleOp
from connection import SSLConnection
from exceptions import ConnectionClosedError, RemoteError, TLSError
from transport import build_ssl_context
from verify import pinned_fingerprint_verifier
from mock_server import MockJSONRPCServer, der_fingerprint, make_ca, make_server_cert, write_pem


HOST = "127.0.0.1"


class TestSSLConnectionEndToEnd(unittest.TestCase):
    """Handshake, verification and calls over real TLS"""

    @classmethod
    def setUpClass(cls):
        cls.tmpdir = tempfile.TemporaryDirectory()
        ca_key, ca_cert = make_ca("Scalaris Test CA")
        server_key, server_cert = make_server_cert(ca_key, ca_cert, HOST)
        _, other_ca_cert = make_ca("Untrusted CA")

        cls.ca_file = write_pem(cls.tmpdir.name, "ca.pem", cert=ca_cert)
        cls.other_ca_file = write_pem(cls.tmpdir.name, "other-ca.pem", cert=other_ca_cert)
        cert_file = write_pem(cls.tmpdir.name, "server.pem", cert=server_cert)
        key_file = write_pem(cls.tmpdir.name, "server-key.pem", key=server_key)
        cls.server_fingerprint = der_fingerprint(server_cert)

        server_context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
        server_context.load_cert_chain(certfile=cert_file, keyfile=key_file)

        store = {}
        cls.server = MockJSONRPCServer({
            "ping": lambda: 42,
            "echo": lambda value: value,
            "nop": lambda value: "ok",
            "write": lambda key, value: store.__setitem__(key, value) or {"status": "ok"},
            "read": lambda key: {"status": "ok", "value": store[key]} if key in store
            else {"status": "fail", "reason": "not_found"},
        }, ssl_context=server_context)
        cls.server.start()

    @classmethod
    def tearDownClass(cls):
        cls.server.stop()
        cls.tmpdir.cleanup()

    def connect(self, **kwargs):
        kwargs.setdefault("context", build_ssl_context(ca_file=self.ca_file))
        return SSLConnection(HOST, port=self.server.port, timeout=10, **kwargs)

    def test_ping(self):
        with self.connect() as connection:
            self.assertTrue(connection.is_open())
            self.assertEqual(connection.get_port(), self.server.port)
            self.assertEqual(connection.exec_call("ping", []), 42)
        self.assertFalse(connection.is_open())

    def test_method_not_found(self):
        with self.connect() as connection:
            with self.assertRaises(RemoteError) as ctx:
                connection.exec_call("bogus", [])
            self.assertEqual(ctx.exception.code, -32601)
            self.assertEqual(ctx.exception.message, "method not found")
            # still usable after a remote error
            self.assertEqual(connection.exec_call("ping", []), 42)

    def test_nested_values_survive_round_trip(self):
        value = {"a": [1, 2.5, None, True, "s"], "b": {"c": {"d": []}}, "e": "ünïcode"}
        with self.connect() as connection:
            self.assertEqual(connection.call("echo", value), value)

    def test_close_is_idempotent(self):
        connection = self.connect()
        connection.close()
        connection.close()
        self.assertFalse(connection.is_open())
        with self.assertRaises(ConnectionClosedError):
            connection.exec_call("ping", [])

    def test_key_value_operations(self):
        with TransactionSingleOp(self.connect()) as api:
            api.write("greeting", {"text": "hello"})
            self.assertEqual(api.read("greeting"), {"text": "hello"})
            self.assertEqual(api.nop(), "ok")

    def test_untrusted_certificate_rejected(self):
        context = build_ssl_context(ca_file=self.other_ca_file)
        with self.assertRaises(TLSError):
            self.connect(context=context, verifier=lambda preverified, cert: True)

    def test_pinned_certificate_accepted(self):
        verifier = pinned_fingerprint_verifier([self.server_fingerprint])
        with self.connect(verifier=verifier) as connection:
            self.assertEqual(connection.exec_call("ping", []), 42)

    def test_wrong_pin_rejected(self):
        verifier = pinned_fingerprint_verifier(["00" * 32])
        with self.assertRaises(TLSError):
            self.connect(verifier=verifier)


if __name__ == '__main__':
    unittest.main()
