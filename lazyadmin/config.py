"""App configuration loading helpers."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import tomllib

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .errors import ConfigurationError
from .models import ConnectionDescriptor, Dialect, TunnelDescriptor
from .tunnel import DEFAULT_SSH_PORT

CONFIG_FILE = Path("admin.toml")

_DEFAULT_PORTS = {Dialect.POSTGRES: 5432, Dialect.MYSQL: 3306}


class TunnelConfig(BaseModel):
    """SSH tunnel settings nested under a connection's ``ssh`` table."""

    host: str
    user: str
    port: int = 0
    password: str | None = None
    private_key: str | None = None
    known_hosts: str | None = None
    insecure_skip_host_key_check: bool = False

    @model_validator(mode="after")
    def _apply_default_port(self) -> "TunnelConfig":
        if not self.port:
            self.port = DEFAULT_SSH_PORT
        return self

    def to_descriptor(self) -> TunnelDescriptor:
        return TunnelDescriptor(
            host=self.host,
            user=self.user,
            port=self.port,
            password=self.password,
            private_key=self.private_key,
            known_hosts=self.known_hosts,
            insecure_skip_host_key_check=self.insecure_skip_host_key_check,
        )


class ConnectionConfig(BaseModel):
    """Connection entry stored in ``[[connections]]``."""

    label: str = ""
    driver: str
    host: str | None = None
    port: int = 0
    user: str | None = None
    password: str | None = None
    name: str | None = None
    ssl_mode: str | None = None
    path: str | None = None
    ssh: TunnelConfig | None = None

    @field_validator("driver")
    @classmethod
    def _validate_driver(cls, value: str) -> str:
        if not value:
            raise ValueError("database driver is required")
        Dialect.parse(value)
        return value

    @model_validator(mode="after")
    def _apply_default_port(self) -> "ConnectionConfig":
        if not self.port:
            self.port = _DEFAULT_PORTS.get(self.dialect, 0)
        return self

    @property
    def dialect(self) -> Dialect:
        return Dialect.parse(self.driver)

    def to_descriptor(self) -> ConnectionDescriptor:
        return ConnectionDescriptor(
            dialect=self.dialect,
            host=self.host,
            port=self.port or None,
            user=self.user,
            password=self.password,
            database=self.name,
            path=self.path,
            ssl_mode=self.ssl_mode,
            tunnel=self.ssh.to_descriptor() if self.ssh else None,
            label=self.label or None,
        )


class ViewConfig(BaseModel):
    """Saved ad hoc query shown alongside tables."""

    title: str
    description: str = ""
    query: str


class AppConfig(BaseModel):
    """Shape of the application configuration file."""

    project_name: str = "lazyadmin"
    connections: list[ConnectionConfig] = Field(default_factory=list)
    views: list[ViewConfig] = Field(default_factory=list)
    active_connection: str | None = None

    @model_validator(mode="after")
    def _label_connections(self) -> "AppConfig":
        for index, connection in enumerate(self.connections, start=1):
            if not connection.label:
                connection.label = f"Connection {index}"
        return self

    def connection(self, label: str) -> ConnectionConfig:
        for entry in self.connections:
            if entry.label == label:
                return entry
        raise ValueError(f"Connection '{label}' not found.")

    def view(self, title: str) -> ViewConfig:
        for entry in self.views:
            if entry.title == title:
                return entry
        raise ValueError(f"View '{title}' not found.")

    def with_connection(self, connection: ConnectionConfig) -> AppConfig:
        """Return a copy with ``connection`` appended (or replacing the same label)."""

        connections = [entry for entry in self.connections if not connection.label or entry.label != connection.label]
        connections.append(connection)
        return AppConfig(
            project_name=self.project_name,
            connections=connections,
            views=list(self.views),
            active_connection=self.active_connection,
        )

    def with_active_connection(self, label: str) -> AppConfig:
        """Return a copy with the active connection updated."""

        return self.model_copy(update={"active_connection": label})


def load_config(path: Path | str | None = None) -> AppConfig:
    """Load configuration from disk; an absent file yields an empty config."""

    config_path = Path(path) if path is not None else CONFIG_FILE
    try:
        with config_path.open("rb") as handle:
            raw = tomllib.load(handle)
    except FileNotFoundError:
        return AppConfig()
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"{config_path}: invalid TOML: {exc}") from exc
    except OSError as exc:
        raise ConfigurationError(f"{config_path}: {exc}") from exc

    connections = raw.get("connections")
    legacy = raw.get("database")
    if not connections and isinstance(legacy, dict) and legacy.get("driver"):
        connections = [{"label": "Default", **legacy}]
    data: dict[str, Any] = {
        "connections": connections or [],
        "views": raw.get("views") or [],
    }
    for key in ("project_name", "active_connection"):
        if isinstance(raw.get(key), str):
            data[key] = raw[key]
    try:
        return AppConfig(**data)
    except ValidationError as exc:
        raise ConfigurationError(f"{config_path}: {exc}") from exc


def save_config(config: AppConfig, path: Path | str | None = None) -> None:
    """Persist configuration to disk (owner read/write only)."""

    config_path = Path(path) if path is not None else CONFIG_FILE
    lines: list[str] = [f"project_name = {_toml_str(config.project_name)}"]
    if config.active_connection:
        lines.append(f"active_connection = {_toml_str(config.active_connection)}")
    for connection in config.connections:
        lines.append("")
        lines.append("[[connections]]")
        lines.append(f"label = {_toml_str(connection.label)}")
        lines.append(f"driver = {_toml_str(connection.driver)}")
        for key in ("host", "user", "password", "name", "ssl_mode", "path"):
            value = getattr(connection, key)
            if value:
                lines.append(f"{key} = {_toml_str(value)}")
        if connection.port:
            lines.append(f"port = {connection.port}")
        if connection.ssh is not None:
            ssh = connection.ssh
            lines.append("")
            lines.append("[connections.ssh]")
            lines.append(f"host = {_toml_str(ssh.host)}")
            lines.append(f"port = {ssh.port}")
            lines.append(f"user = {_toml_str(ssh.user)}")
            for key in ("password", "private_key", "known_hosts"):
                value = getattr(ssh, key)
                if value:
                    lines.append(f"{key} = {_toml_str(value)}")
            if ssh.insecure_skip_host_key_check:
                lines.append("insecure_skip_host_key_check = true")
    for view in config.views:
        lines.append("")
        lines.append("[[views]]")
        lines.append(f"title = {_toml_str(view.title)}")
        if view.description:
            lines.append(f"description = {_toml_str(view.description)}")
        lines.append(f"query = {_toml_str(view.query)}")
    config_path.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(config_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as handle:
        handle.write("\n".join(lines) + "\n")


def _toml_str(value: str) -> str:
    # TOML rejects surrogate escapes and a raw DEL, so non-ASCII stays literal.
    return json.dumps(value, ensure_ascii=False).replace("\x7f", "\\u007f")


__all__ = [
    "AppConfig",
    "CONFIG_FILE",
    "ConnectionConfig",
    "TunnelConfig",
    "ViewConfig",
    "load_config",
    "save_config",
]
