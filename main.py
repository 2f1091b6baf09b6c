"""
Command Line Interface for the Scalaris JSON-RPC client
"""
import argparse
import json
import logging
import sys
from typing import Any, List, Optional

from client import TransactionSingleOp
from config import ConfigManager
from connection import create_connection
from exceptions import ScalarisError
from models import ConnectionConfig, DEFAULT_LINK, TransportType


def setup_logging(verbosity: int = 0):
    """Setup logging configuration based on verbosity level

    Args:
        verbosity: 0 = WARNING+ERROR only, 1 = INFO+, 2 = DEBUG+
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )


def parse_value(text: str) -> Any:
    """Interpret a command line value as JSON, falling back to a plain string"""
    try:
        return json.loads(text)
    except ValueError:
        return text


def resolve_connection_config(args) -> ConnectionConfig:
    """Build the connection config from --host or from a configured profile"""
    if getattr(args, 'host', None):
        return ConnectionConfig(
            name="command-line",
            hostname=args.host,
            transport_type=TransportType.TCP if args.plain else TransportType.SSL,
            link=args.link or DEFAULT_LINK,
            port=args.port,
            timeout=args.timeout,
            ca_file=args.ca_file,
            check_hostname=not args.no_check_hostname
        )

    config_manager = ConfigManager(args.config)
    issues = config_manager.validate_config()
    if issues:
        raise ValueError("Configuration validation failed:\n" + "\n".join(f"  - {issue}" for issue in issues))

    connection_config = config_manager.get_connection_config(getattr(args, 'connection', None))
    # command line overrides
    if args.port is not None:
        connection_config.port = args.port
    if args.link:
        connection_config.link = args.link
    if args.timeout is not None:
        connection_config.timeout = args.timeout
    return connection_config


def run_command(args) -> int:
    """Open a connection and run a key-value or raw RPC command"""
    logger = logging.getLogger("main")

    try:
        connection_config = resolve_connection_config(args)
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    try:
        with create_connection(connection_config) as connection:
            logger.info(f"Connected to {connection_config.hostname}:{connection.get_port()}")
            api = TransactionSingleOp(connection)

            if args.command == 'read':
                print(json.dumps(_printable(api.read(args.key))))
            elif args.command == 'write':
                api.write(args.key, parse_value(args.value))
                print("ok")
            elif args.command == 'ping':
                print(api.nop())
            elif args.command == 'call':
                params = [parse_value(p) for p in args.params]
                print(json.dumps(connection.exec_call(args.method, params), indent=2))
        return 0
    except (ScalarisError, OSError) as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"Error: {e}")
        return 1


def _printable(value: Any) -> Any:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def manage_config(args):
    """Manage configuration"""
    config_manager = ConfigManager(args.config)

    if args.list:
        config_manager.print_connections()
        return 0

    elif args.validate:
        issues = config_manager.validate_config()
        if issues:
            print("Configuration validation failed:")
            for issue in issues:
                print(f"  - {issue}")
            return 1
        else:
            print("Configuration is valid.")
            return 0

    else:
        print("No configuration action specified. Use --help for options.")
        return 1


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point"""
    # Use two parent parsers to avoid defaults overriding values when options
    # are provided only before or only after the subcommand.
    common_main = argparse.ArgumentParser(add_help=False)
    common_main.add_argument('--config', '-c', default='config.json',
                             help='Configuration file path (default: config.json)')
    common_main.add_argument('--connection', '-n', default=None,
                             help='Connection profile name (default: first active profile)')
    common_main.add_argument('--verbose', '-v', action='count', default=0,
                             help='Increase verbosity: -v for INFO, -vv for DEBUG (default: WARNING+ERROR only)')

    common_sub = argparse.ArgumentParser(add_help=False)
    common_sub.add_argument('--config', '-c', default=argparse.SUPPRESS,
                            help='Configuration file path (default: config.json)')
    common_sub.add_argument('--connection', '-n', default=argparse.SUPPRESS,
                            help='Connection profile name (default: first active profile)')
    common_sub.add_argument('--verbose', '-v', action='count', default=argparse.SUPPRESS,
                            help='Increase verbosity: -v for INFO, -vv for DEBUG (default: WARNING+ERROR only)')

    # Ad-hoc connection options, these bypass the configuration file
    connection_opts = argparse.ArgumentParser(add_help=False)
    connection_opts.add_argument('--host', default=None,
                                 help='Scalaris host name (bypasses the configuration file)')
    connection_opts.add_argument('--port', type=int, default=None,
                                 help='Server port (default: 443 for TLS, 8000 for --plain)')
    connection_opts.add_argument('--link', default=None,
                                 help=f'JSON-RPC endpoint path (default: {DEFAULT_LINK})')
    connection_opts.add_argument('--timeout', type=float, default=None,
                                 help='Socket timeout in seconds (default: none)')
    connection_opts.add_argument('--plain', action='store_true', default=False,
                                 help='Use plain TCP instead of TLS')
    connection_opts.add_argument('--ca-file', default=None,
                                 help='PEM file with trusted CA certificates')
    connection_opts.add_argument('--no-check-hostname', action='store_true', default=False,
                                 help='Do not match the server certificate against the host name')

    parser = argparse.ArgumentParser(
        description="Scalaris JSON-RPC client",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Read a key using the first active profile of config.json
  python main.py read mykey

  # Write a JSON value over TLS to an explicit host
  python main.py write mykey '{"a": 1}' --host scalaris.example.org --ca-file ca.pem

  # Check that the node answers, with DEBUG logging
  python main.py -vv ping -n local-ssl

  # Raw JSON-RPC call
  python main.py call read '"mykey"'
        """,
        parents=[common_main],
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    config_parser = subparsers.add_parser('config', help='Manage configuration', parents=[common_sub])
    config_parser.add_argument('--list', action='store_true',
                               help='List configured connections')
    config_parser.add_argument('--validate', action='store_true',
                               help='Validate configuration')

    read_parser = subparsers.add_parser('read', help='Read a key', parents=[common_sub, connection_opts])
    read_parser.add_argument('key', help='Key to read')

    write_parser = subparsers.add_parser('write', help='Write a key', parents=[common_sub, connection_opts])
    write_parser.add_argument('key', help='Key to write')
    write_parser.add_argument('value', help='Value to store (parsed as JSON if possible)')

    subparsers.add_parser('ping', help='Check that the node answers', parents=[common_sub, connection_opts])

    call_parser = subparsers.add_parser('call', help='Execute a raw JSON-RPC call', parents=[common_sub, connection_opts])
    call_parser.add_argument('method', help='Remote method name')
    call_parser.add_argument('params', nargs='*', help='Positional parameters (parsed as JSON if possible)')

    args = parser.parse_args(argv)

    # Setup logging
    setup_logging(getattr(args, 'verbose', 0))

    if not args.command:
        parser.print_help()
        return 1

    if args.command == 'config':
        return manage_config(args)
    elif args.command in ('read', 'write', 'ping', 'call'):
        return run_command(args)
    else:
        print(f"Unknown command: {args.command}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
