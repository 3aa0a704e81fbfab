"""Connection manager: descriptor -> (optional tunnel) -> live database handle."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any

from .dialects import SqlDialect, get_dialect
from .drivers import DatabaseHandle
from .errors import ConfigurationError, ConnectivityError, LazyAdminError
from .loop import BackgroundLoop
from .models import ConnectionDescriptor
from .tunnel import DEFAULT_MAX_CONNECTIONS, SecureTunnel

LOG = logging.getLogger(__name__)


@dataclass(slots=True)
class Connection:
    """Live handle plus the tunnel it rides on; owns both."""

    handle: DatabaseHandle
    dialect: SqlDialect
    descriptor: ConnectionDescriptor
    tunnel: SecureTunnel | None = None
    connected_at: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))
    latency_ms: int | None = None
    _loop: BackgroundLoop | None = None
    _closed: bool = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Close the handle and the tunnel; failures are logged, never raised."""

        if self._closed:
            return
        self._closed = True
        try:
            self.handle.close()
        except Exception:
            LOG.warning("Failed to close database handle", exc_info=True, extra={"label": self.descriptor.label})
        if self.tunnel is not None:
            _close_tunnel(self.tunnel, self._loop)
        LOG.info("Connection closed", extra={"label": self.descriptor.label})

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class ConnectionManager:
    """Resolves descriptors into live connections, optionally through SSH."""

    def __init__(
        self,
        *,
        loop: BackgroundLoop | None = None,
        max_tunnel_connections: int = DEFAULT_MAX_CONNECTIONS,
    ) -> None:
        self._loop = loop
        self._owns_loop = loop is None
        self._max_tunnel_connections = max_tunnel_connections

    @property
    def loop(self) -> BackgroundLoop:
        if self._loop is None:
            self._loop = BackgroundLoop()
        return self._loop

    def connect(self, descriptor: ConnectionDescriptor) -> Connection:
        """Open a connection, cleaning up any partial resource on failure."""

        dialect = get_dialect(descriptor.dialect)
        dialect.validate(descriptor)
        resolved = dialect.with_defaults(descriptor)
        tunnel: SecureTunnel | None = None
        if resolved.tunnel is not None:
            if not resolved.host:
                raise ConfigurationError("tunnelled connections require a database host")
            tunnel = SecureTunnel(
                resolved.tunnel,
                resolved.host,
                int(resolved.port or 0),
                max_connections=self._max_tunnel_connections,
            )
            self.loop.run(tunnel.start())
            local_host, local_port = tunnel.local_address
            resolved = replace(resolved, host=local_host, port=local_port)

        started = time.perf_counter()
        handle: DatabaseHandle | None = None
        try:
            handle = dialect.open(resolved, self.loop)
            handle.ping()
        except LazyAdminError:
            self._cleanup(handle, tunnel)
            raise
        except Exception as exc:
            self._cleanup(handle, tunnel)
            label = descriptor.label or dialect.tag.value
            raise ConnectivityError(f"Failed to connect to '{label}': {exc}") from exc
        latency_ms = int((time.perf_counter() - started) * 1000)
        LOG.info(
            "Connected",
            extra={
                "label": descriptor.label,
                "dialect": dialect.tag.value,
                "tunnelled": tunnel is not None,
                "latency_ms": latency_ms,
            },
        )
        return Connection(
            handle=handle,
            dialect=dialect,
            descriptor=descriptor,
            tunnel=tunnel,
            latency_ms=latency_ms,
            _loop=self._loop,
        )

    def shutdown(self) -> None:
        """Stop the background loop, if this manager created it."""

        if self._loop is not None and self._owns_loop:
            self._loop.shutdown()
            self._loop = None

    def __enter__(self) -> "ConnectionManager":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()

    def _cleanup(self, handle: DatabaseHandle | None, tunnel: SecureTunnel | None) -> None:
        if handle is not None:
            try:
                handle.close()
            except Exception:
                LOG.warning("Failed to close handle after connect error", exc_info=True)
        if tunnel is not None:
            _close_tunnel(tunnel, self._loop)


def dsn_for(descriptor: ConnectionDescriptor) -> Any:
    """Connection string/parameters for display, with the password masked."""

    dialect = get_dialect(descriptor.dialect)
    return dialect.dsn(dialect.with_defaults(descriptor), mask_password=True)


def _close_tunnel(tunnel: SecureTunnel, loop: BackgroundLoop | None) -> None:
    if loop is None or not loop.running:
        LOG.warning("Background loop stopped; SSH tunnel left open")
        return
    try:
        loop.run(tunnel.close())
    except Exception:
        LOG.warning("Failed to close SSH tunnel", exc_info=True)


__all__ = ["Connection", "ConnectionManager", "dsn_for"]
