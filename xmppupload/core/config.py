"""
Upload client configuration module.

Configuration for the HTTP side of an upload: the connection pool,
TLS and proxy settings used for PUT requests, and the slot negotiation
timeout.
"""
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, Union
import ssl

import aiohttp

# XEP-0363 slot requests are bounded by a fixed timeout.
SLOT_REQUEST_TIMEOUT = 30.0

DEFAULT_CHUNK_SIZE = 64 * 1024


@dataclass
class ProxyConfig:
    """
    Proxy configuration for PUT requests.

    Supports HTTP and HTTPS proxies.
    """
    url: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None

    def to_aiohttp_proxy(self) -> Optional[str]:
        """Convert to aiohttp proxy format."""
        if not self.url:
            return None

        if self.username and self.password:
            if '://' in self.url:
                protocol, rest = self.url.split('://', 1)
                return f"{protocol}://{self.username}:{self.password}@{rest}"

        return self.url


@dataclass
class SSLConfig:
    """
    SSL/TLS configuration.

    Upload servers are usually public HTTPS endpoints, but self-hosted
    deployments often use a private CA.
    """
    verify: bool = True
    cert_file: Optional[str] = None
    key_file: Optional[str] = None
    ca_file: Optional[str] = None
    check_hostname: bool = True

    def create_ssl_context(self) -> Union[ssl.SSLContext, bool]:
        """Create SSL context from configuration."""
        if not self.verify:
            return False

        context = ssl.create_default_context()

        if self.ca_file:
            context.load_verify_locations(self.ca_file)

        if self.cert_file:
            context.load_cert_chain(
                self.cert_file,
                keyfile=self.key_file
            )

        context.check_hostname = self.check_hostname

        return context


@dataclass
class TimeoutConfig:
    """
    Timeout configuration for PUT requests.

    There is no total timeout: a transfer runs until it completes, fails
    or the caller's context gives up.
    """
    total: Optional[float] = None
    connect: float = 30.0
    sock_read: Optional[float] = None
    sock_connect: float = 30.0

    def to_aiohttp_timeout(self) -> aiohttp.ClientTimeout:
        """Convert to aiohttp ClientTimeout."""
        return aiohttp.ClientTimeout(
            total=self.total,
            connect=self.connect,
            sock_read=self.sock_read,
            sock_connect=self.sock_connect
        )


@dataclass
class UploadConfig:
    """
    Complete upload client configuration.

    Attributes:
        user_agent: User-Agent header sent with PUT requests
        proxy: Optional proxy for PUT requests
        ssl: TLS settings
        timeout: HTTP timeouts
        limit: Connection pool size shared by concurrent uploads
        limit_per_host: Connection pool size per upload host
        chunk_size: Bytes read from the source per body chunk
        progress_buffer: Snapshot buffer of channels created by the client
            (0 delivers only to a waiting receiver)
        log_level: Level for the package loggers
    """
    user_agent: str = 'xmppupload/1.0.0'
    proxy: Optional[ProxyConfig] = None
    ssl: SSLConfig = field(default_factory=SSLConfig)
    timeout: TimeoutConfig = field(default_factory=TimeoutConfig)
    limit: int = 100
    limit_per_host: int = 10
    chunk_size: int = DEFAULT_CHUNK_SIZE
    progress_buffer: int = 0
    log_level: int = 20  # logging.INFO

    @property
    def slot_timeout(self) -> float:
        """Slot negotiation timeout; not configurable."""
        return SLOT_REQUEST_TIMEOUT

    @classmethod
    def default(cls) -> 'UploadConfig':
        """Create default configuration."""
        return cls()

    @classmethod
    def with_proxy(cls, proxy_url: str, **kwargs) -> 'UploadConfig':
        """Create configuration with proxy."""
        return cls(
            proxy=ProxyConfig(url=proxy_url),
            **kwargs
        )

    @classmethod
    def insecure(cls, **kwargs) -> 'UploadConfig':
        """Create configuration with SSL verification disabled."""
        return cls(
            ssl=SSLConfig(verify=False, check_hostname=False),
            **kwargs
        )

    def get_connector_kwargs(self) -> Dict[str, Any]:
        """Get kwargs for aiohttp TCPConnector."""
        return {
            'limit': self.limit,
            'limit_per_host': self.limit_per_host,
            'ssl': self.ssl.create_ssl_context(),
        }

    def get_session_kwargs(self) -> Dict[str, Any]:
        """Get kwargs for aiohttp ClientSession."""
        return {
            'headers': {'User-Agent': self.user_agent},
            'timeout': self.timeout.to_aiohttp_timeout(),
        }

    def get_request_kwargs(self) -> Dict[str, Any]:
        """Get per-request kwargs for PUT requests."""
        proxy = self.proxy.to_aiohttp_proxy() if self.proxy else None
        return {'proxy': proxy} if proxy else {}
