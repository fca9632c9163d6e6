"""Configuration settings for the Cerbero file-sharing server."""
import argparse
import os
from dataclasses import dataclass
from typing import List, Optional, Tuple

# Listener
DEFAULT_LISTEN = ":8080"
DEFAULT_HOST = "0.0.0.0"

# Storage limits
DEFAULT_ROOT_DIR = "./archivos"
DEFAULT_MAX_UPLOAD_MB = 512
CHUNK_SIZE = 8192  # 8KB copy chunks
TEMP_DIR_NAME = ".cerbero-tmp"  # partial uploads, inside the root

# Delete form: only text fields, never file parts
DELETE_MAX_FIELDS = 10

# Rate limiting
DEFAULT_RATE_LIMIT_INTERVAL = 0.5  # seconds between admitted uploads per client
RATE_LIMIT_SWEEP_THRESHOLD = 10000

PASSWORD_ENV_VAR = "CERBERO_PASSWORD"


def parse_listen(listen: str) -> Tuple[str, int]:
    """Split a ``host:port`` listen address; an empty host means all interfaces."""
    host, sep, port = listen.rpartition(":")
    if not sep:
        raise ValueError(f"Listen address must look like host:port, got {listen!r}")
    try:
        port_value = int(port)
    except ValueError:
        raise ValueError(f"Invalid port in listen address {listen!r}")
    if not 0 < port_value < 65536:
        raise ValueError(f"Port out of range in listen address {listen!r}")
    host = host.strip("[]") or DEFAULT_HOST
    return host, port_value


@dataclass(frozen=True)
class Settings:
    root_dir: str
    host: str = DEFAULT_HOST
    port: int = 8080
    max_upload_mb: int = DEFAULT_MAX_UPLOAD_MB
    password: str = ""
    delete_enabled: bool = True
    rate_limit_interval: float = DEFAULT_RATE_LIMIT_INTERVAL
    logs_dir: Optional[str] = None

    def __post_init__(self):
        # The root is resolved once and never changes afterwards.
        object.__setattr__(self, "root_dir", os.path.abspath(self.root_dir))
        if self.max_upload_mb <= 0:
            raise ValueError("max_upload_mb must be positive")

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb << 20

    @property
    def password_enabled(self) -> bool:
        return self.password != ""

    @classmethod
    def from_args(cls, argv: Optional[List[str]] = None) -> 'Settings':
        """Create Settings from command line arguments."""
        parser = argparse.ArgumentParser(description='Self-hosted file sharing server')
        parser.add_argument('--listen', default=DEFAULT_LISTEN,
                            help='IP address and port to listen on (e.g. :8080)')
        parser.add_argument('--root', default=DEFAULT_ROOT_DIR,
                            help='Directory where shared files are stored')
        parser.add_argument('--maxmb', type=int, default=DEFAULT_MAX_UPLOAD_MB,
                            help='Maximum upload size in MB')
        parser.add_argument('--password', default=os.getenv(PASSWORD_ENV_VAR, ''),
                            help=f'Password protecting uploads and deletes (default: ${PASSWORD_ENV_VAR})')
        parser.add_argument('--delete', action=argparse.BooleanOptionalAction, default=True,
                            help='Allow deleting files')
        parser.add_argument('--rate-interval', type=float, default=DEFAULT_RATE_LIMIT_INTERVAL,
                            help='Minimum seconds between uploads from one client (0 disables)')
        parser.add_argument('--logs-dir', default=None,
                            help='Directory for the debug log file')
        args = parser.parse_args(argv)

        if args.maxmb <= 0:
            parser.error('--maxmb must be positive.')
        try:
            host, port = parse_listen(args.listen)
        except ValueError as e:
            parser.error(str(e))

        return cls(
            root_dir=args.root,
            host=host,
            port=port,
            max_upload_mb=args.maxmb,
            password=args.password,
            delete_enabled=args.delete,
            rate_limit_interval=args.rate_interval,
            logs_dir=args.logs_dir,
        )
