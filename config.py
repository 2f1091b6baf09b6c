"""
Configuration management for Scalaris JSON-RPC connections
"""
import json
import os
from typing import List, Optional

from models import ConnectionConfig, DEFAULT_LINK, TransportType


class ConfigManager:
    """Manages named connection profiles"""

    def __init__(self, config_file: Optional[str] = None):
        """
        Initialize configuration manager

        Args:
            config_file: Path to configuration file. If None, looks for config.json
        """
        self.config_file = config_file or "config.json"
        self.connections: List[ConnectionConfig] = []

        if os.path.exists(self.config_file):
            self.load_config()

    def load_config(self) -> None:
        """Load configuration from file"""
        try:
            with open(self.config_file, 'r') as f:
                config_data = json.load(f)

            self.connections = []
            for connection_data in config_data.get('connections', []):
                connection_config = ConnectionConfig(
                    name=connection_data['name'],
                    hostname=connection_data['hostname'],
                    transport_type=TransportType(connection_data.get('transport', 'ssl')),
                    link=connection_data.get('link', DEFAULT_LINK),
                    port=connection_data.get('port'),
                    timeout=connection_data.get('timeout'),
                    ca_file=connection_data.get('ca_file'),
                    cert_file=connection_data.get('cert_file'),
                    key_file=connection_data.get('key_file'),
                    check_hostname=connection_data.get('check_hostname', True),
                    pinned_fingerprints=connection_data.get('pinned_fingerprints', []),
                    active=connection_data.get('active', True)
                )
                self.connections.append(connection_config)

        except Exception as e:
            raise ValueError(f"Failed to load config from {self.config_file}: {e}")

    def validate_config(self) -> List[str]:
        """Validate current configuration and return list of issues"""
        issues = []

        if not self.connections:
            issues.append("No connections configured")
            return issues

        names = []
        for i, connection in enumerate(self.connections):
            if not connection.name:
                issues.append(f"Connection {i}: Missing name")
            elif connection.name in names:
                issues.append(f"Connection {i}: Duplicate name '{connection.name}'")
            else:
                names.append(connection.name)

            if not connection.hostname:
                issues.append(f"Connection '{connection.name}': Missing hostname")

            if connection.port is not None and not 0 < connection.port < 65536:
                issues.append(f"Connection '{connection.name}': Invalid port {connection.port}")

            if connection.timeout is not None and connection.timeout <= 0:
                issues.append(f"Connection '{connection.name}': Timeout must be positive")

            if connection.transport_type == TransportType.TCP:
                if connection.ca_file or connection.cert_file or connection.pinned_fingerprints:
                    issues.append(f"Connection '{connection.name}': TLS settings given for a plain TCP connection")

            if connection.key_file and not connection.cert_file:
                issues.append(f"Connection '{connection.name}': key_file requires cert_file")

        return issues

    def get_connection_config(self, name: Optional[str] = None) -> ConnectionConfig:
        """
        Look up a connection profile

        Args:
            name: Profile name. If None, the first active profile is returned

        Raises:
            ValueError: if no matching profile exists
        """
        if name is None:
            for connection in self.connections:
                if connection.active:
                    return connection
            raise ValueError("No active connection configured")

        for connection in self.connections:
            if connection.name == name:
                return connection
        raise ValueError(f"Connection '{name}' not found in {self.config_file}")

    def print_connections(self):
        """Print all configured connections with their status (active/inactive)"""
        print("Configured connections:")
        for connection in self.connections:
            status = "" if connection.active else " - inactive"
            port = connection.port if connection.port is not None else "default"
            print(f"  {connection.name} ({connection.transport_type.value}): "
                  f"{connection.hostname}:{port}/{connection.link}{status}")
