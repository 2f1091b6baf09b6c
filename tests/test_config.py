"""
Tests for connection profile configuration
"""
import json
import tempfile
import unittest
import os
import sys
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from config import ConfigManager
from models import TransportType


class TestConfigManager(unittest.TestCase):
    """Loading and validating connection profiles"""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)

    def write_config(self, data):
        path = os.path.join(self.tmpdir.name, "config.json")
        with open(path, 'w') as f:
            if isinstance(data, str):
                f.write(data)
            else:
                json.dump(data, f)
        return path

    def test_load_profiles(self):
        path = self.write_config({
            "connections": [
                {"name": "secure", "hostname": "node1", "port": 8443, "timeout": 5,
                 "pinned_fingerprints": ["aa"], "active": False},
                {"name": "plain", "transport": "tcp", "hostname": "node2"},
            ]
        })
        manager = ConfigManager(path)

        self.assertEqual(len(manager.connections), 2)
        secure, plain = manager.connections
        self.assertEqual(secure.transport_type, TransportType.SSL)
        self.assertEqual(secure.port, 8443)
        self.assertEqual(secure.link, "jsonrpc.yaws")
        self.assertEqual(secure.pinned_fingerprints, ["aa"])
        self.assertEqual(plain.transport_type, TransportType.TCP)
        self.assertIsNone(plain.port)
        self.assertEqual(manager.validate_config(), [])

        self.assertEqual(manager.get_connection_config().name, "plain")
        self.assertEqual(manager.get_connection_config("secure").hostname, "node1")
        with self.assertRaises(ValueError):
            manager.get_connection_config("unknown")

    def test_missing_file_gives_empty_config(self):
        manager = ConfigManager(os.path.join(self.tmpdir.name, "absent.json"))
        self.assertEqual(manager.connections, [])
        self.assertEqual(manager.validate_config(), ["No connections configured"])

    def test_invalid_file(self):
        path = self.write_config("{broken")
        with self.assertRaises(ValueError):
            ConfigManager(path)

    def test_unknown_transport(self):
        path = self.write_config({"connections": [{"name": "x", "hostname": "h", "transport": "quic"}]})
        with self.assertRaises(ValueError):
            ConfigManager(path)

    def test_validation_issues(self):
        path = self.write_config({
            "connections": [
                {"name": "a", "hostname": "h", "port": 70000},
                {"name": "a", "hostname": "h"},
                {"name": "b", "hostname": "", "transport": "tcp", "ca_file": "ca.pem"},
                {"name": "c", "hostname": "h", "timeout": 0, "key_file": "key.pem"},
            ]
        })
        issues = ConfigManager(path).validate_config()

        self.assertIn("Connection 'a': Invalid port 70000", issues)
        self.assertIn("Connection 1: Duplicate name 'a'", issues)
        self.assertIn("Connection 'b': Missing hostname", issues)
        self.assertIn("Connection 'b': TLS settings given for a plain TCP connection", issues)
        self.assertIn("Connection 'c': Timeout must be positive", issues)
        self.assertIn("Connection 'c': key_file requires cert_file", issues)


if __name__ == '__main__':
    unittest.main()
