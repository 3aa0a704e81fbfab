"""SSH tunnel that forwards local TCP connections to a fixed remote endpoint."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import Any

import asyncssh

from .errors import ConfigurationError, TunnelError
from .models import TunnelDescriptor

LOG = logging.getLogger(__name__)

DEFAULT_SSH_PORT = 22
DEFAULT_MAX_CONNECTIONS = 64
_CHUNK_SIZE = 32 * 1024
_DRAIN_TIMEOUT = 1.0


class TunnelState(str, Enum):
    """Lifecycle of a :class:`SecureTunnel`."""

    CREATED = "created"
    LISTENING = "listening"
    CLOSED = "closed"


class SecureTunnel:
    """One authenticated SSH session multiplexing any number of local clients.

    Every connection accepted on the ephemeral local listener gets its own
    ``direct-tcpip`` channel to ``remote_host:remote_port``. Pairs are
    independent; a failed remote dial drops only that local client.
    """

    def __init__(
        self,
        descriptor: TunnelDescriptor,
        remote_host: str,
        remote_port: int,
        *,
        bind_host: str = "127.0.0.1",
        max_connections: int = DEFAULT_MAX_CONNECTIONS,
        connect_timeout: float = 10.0,
    ) -> None:
        if max_connections < 1:
            raise ConfigurationError("max_connections must be at least 1")
        self._descriptor = descriptor
        self._remote = (remote_host, remote_port)
        self._bind_host = bind_host
        self._max_connections = max_connections
        self._connect_timeout = connect_timeout
        self._state = TunnelState.CREATED
        self._ssh: asyncssh.SSHClientConnection | None = None
        self._server: asyncio.AbstractServer | None = None
        self._local_address: tuple[str, int] | None = None
        self._active: set[asyncio.Task[Any]] = set()

    @property
    def state(self) -> TunnelState:
        return self._state

    @property
    def local_address(self) -> tuple[str, int]:
        """Host/port of the local listener; only valid once listening."""

        if self._local_address is None:
            raise RuntimeError("tunnel is not listening")
        return self._local_address

    @property
    def remote_address(self) -> tuple[str, int]:
        return self._remote

    @property
    def active_connections(self) -> int:
        return len(self._active)

    async def start(self) -> None:
        """Authenticate, bind the local listener and begin forwarding."""

        if self._state is not TunnelState.CREATED:
            raise RuntimeError(f"cannot start tunnel in state {self._state.value}")
        options = self._connect_options()
        host = self._descriptor.host
        port = self._descriptor.port or DEFAULT_SSH_PORT
        try:
            self._ssh = await asyncio.wait_for(
                asyncssh.connect(host, port, **options),
                timeout=self._connect_timeout,
            )
        except (OSError, asyncssh.Error, asyncio.TimeoutError) as exc:
            self._state = TunnelState.CLOSED
            raise TunnelError(f"failed to dial SSH {host}:{port}: {exc}") from exc
        try:
            self._server = await asyncio.start_server(self._handle_client, self._bind_host, 0)
        except OSError as exc:
            await self._close_session()
            self._state = TunnelState.CLOSED
            raise TunnelError(f"failed to create local listener: {exc}") from exc
        sockname = self._server.sockets[0].getsockname()
        self._local_address = (str(sockname[0]), int(sockname[1]))
        self._state = TunnelState.LISTENING
        LOG.info(
            "SSH tunnel listening",
            extra={
                "ssh_host": host,
                "local_address": f"{self._local_address[0]}:{self._local_address[1]}",
                "remote_address": f"{self._remote[0]}:{self._remote[1]}",
            },
        )

    async def close(self) -> None:
        """Stop accepting and terminate the SSH session; in-flight pairs wind down."""

        if self._state is TunnelState.CLOSED:
            return
        self._state = TunnelState.CLOSED
        if self._server is not None:
            self._server.close()
        await self._close_session()
        pending = {task for task in self._active if not task.done()}
        if pending:
            await asyncio.wait(pending, timeout=_DRAIN_TIMEOUT)
        LOG.info("SSH tunnel closed", extra={"ssh_host": self._descriptor.host})

    async def __aenter__(self) -> "SecureTunnel":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def _connect_options(self) -> dict[str, Any]:
        descriptor = self._descriptor
        if not descriptor.host or not descriptor.user:
            raise ConfigurationError("ssh tunnel requires host and user")
        options: dict[str, Any] = {"username": descriptor.user, "agent_path": None}
        if descriptor.private_key:
            options["client_keys"] = [self._load_private_key(descriptor)]
            options["password"] = None
        elif descriptor.password:
            options["client_keys"] = []
            options["password"] = descriptor.password
        else:
            raise ConfigurationError("ssh tunnel requires a password or private_key")
        if descriptor.insecure_skip_host_key_check:
            LOG.warning(
                "SSH host key verification disabled",
                extra={"ssh_host": descriptor.host},
            )
            options["known_hosts"] = None
        elif descriptor.known_hosts:
            options["known_hosts"] = str(Path(descriptor.known_hosts).expanduser())
        return options

    @staticmethod
    def _load_private_key(descriptor: TunnelDescriptor) -> asyncssh.SSHKey:
        path = Path(descriptor.private_key or "").expanduser()
        try:
            return asyncssh.read_private_key(path, passphrase=descriptor.password or None)
        except (OSError, asyncssh.KeyImportError, asyncssh.KeyEncryptionError) as exc:
            raise ConfigurationError(f"failed to load private key {path}: {exc}") from exc

    async def _close_session(self) -> None:
        ssh = self._ssh
        self._ssh = None
        if ssh is None:
            return
        ssh.close()
        try:
            await ssh.wait_closed()
        except (OSError, asyncssh.Error):  # pragma: no cover - best effort cleanup
            LOG.debug("SSH session closed with error", exc_info=True)

    async def _handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        if self._state is not TunnelState.LISTENING or self._ssh is None:
            await _close_writer(writer)
            return
        if len(self._active) >= self._max_connections:
            LOG.warning(
                "Rejecting forwarded connection; tunnel at capacity",
                extra={"max_connections": self._max_connections},
            )
            await _close_writer(writer)
            return
        task = asyncio.current_task()
        if task is not None:
            self._active.add(task)
        try:
            await self._forward(reader, writer)
        finally:
            if task is not None:
                self._active.discard(task)

    async def _forward(self, local_reader: asyncio.StreamReader, local_writer: asyncio.StreamWriter) -> None:
        host, port = self._remote
        ssh = self._ssh
        try:
            if ssh is None:
                raise TunnelError("ssh session closed")
            remote_reader, remote_writer = await ssh.open_connection(host, port)
        except (OSError, asyncssh.Error, TunnelError) as exc:
            LOG.warning(
                "Remote dial through tunnel failed",
                extra={"remote_address": f"{host}:{port}", "error": str(exc)},
            )
            await _close_writer(local_writer)
            return
        upstream = asyncio.ensure_future(_pipe(local_reader, remote_writer))
        downstream = asyncio.ensure_future(_pipe(remote_reader, local_writer))
        try:
            await asyncio.wait({upstream, downstream}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (upstream, downstream):
                task.cancel()
            await asyncio.gather(upstream, downstream, return_exceptions=True)
            await _close_writer(remote_writer)
            await _close_writer(local_writer)


async def _pipe(reader: Any, writer: Any) -> None:
    """Copy bytes until EOF or a transport error on either side."""

    try:
        while True:
            data = await reader.read(_CHUNK_SIZE)
            if not data:
                return
            writer.write(data)
            await writer.drain()
    except (OSError, asyncssh.Error):
        return


async def _close_writer(writer: Any) -> None:
    try:
        writer.close()
        wait_closed = getattr(writer, "wait_closed", None)
        if wait_closed is not None:
            await wait_closed()
    except (OSError, asyncssh.Error):
        LOG.debug("Error closing forwarded stream", exc_info=True)


__all__ = ["DEFAULT_MAX_CONNECTIONS", "DEFAULT_SSH_PORT", "SecureTunnel", "TunnelState"]
