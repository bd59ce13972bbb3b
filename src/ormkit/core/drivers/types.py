"""Driver types, connection configuration and URL parsing."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any
from urllib.parse import parse_qsl, quote, unquote, urlencode, urlsplit

from ormkit.core.errors import ConfigError


class DriverType(str, Enum):
    """Supported store protocols (canonical names)."""

    POSTGRES = "postgres"
    MONGODB = "mongodb"


# Alternative spellings accepted wherever a protocol name is.
ALIASES: dict[str, DriverType] = {
    "postgres": DriverType.POSTGRES,
    "postgresql": DriverType.POSTGRES,
    "pg": DriverType.POSTGRES,
    "mongodb": DriverType.MONGODB,
    "mongo": DriverType.MONGODB,
    "mongodb+srv": DriverType.MONGODB,
}

# Query parameters lifted out of a URL into DriverOptions.
_OPTION_PARAMS = ("debug", "pool", "connect_timeout")

_TRUE = frozenset({"1", "true", "yes", "on"})


def _truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE
    return bool(value)


@dataclass(frozen=True)
class DriverOptions:
    """
    Per-driver behaviour switches.

    debug            : emit every constructed query on the debug side channel
    pool             : open a connection pool instead of a single connection
                       (relational stores)
    connect_timeout  : seconds to wait while connecting, ``None`` for the
                       client default
    """

    debug: bool = False
    pool: bool = False
    connect_timeout: float | None = None

    @classmethod
    def coerce(cls, options: DriverOptions | Mapping[str, Any] | None) -> DriverOptions:
        if options is None:
            return cls()
        if isinstance(options, DriverOptions):
            return options
        return cls().updated(options)

    def updated(self, values: Mapping[str, Any]) -> DriverOptions:
        """Copy with ``values`` applied; strings such as ``"true"`` are parsed."""
        known = {f.name for f in fields(self)}
        unknown = set(values) - known
        if unknown:
            raise ConfigError(f"Unknown driver options: {', '.join(sorted(unknown))}")
        changes: dict[str, Any] = {}
        for key, value in values.items():
            if key == "connect_timeout":
                try:
                    changes[key] = None if value is None else float(value)
                except (TypeError, ValueError) as e:
                    raise ConfigError(f"Invalid connect_timeout: {value!r}", cause=e) from e
            else:
                changes[key] = _truthy(value)
        return replace(self, **changes)


@dataclass(frozen=True)
class ConnectionConfig:
    """
    Where and how to connect.

    Built once (from a URL or a mapping) and immutable afterwards.
    ``protocol`` is kept as written (``postgresql``, ``mongodb+srv``...);
    the registry resolves aliases.  ``options`` holds the remaining
    store-specific query parameters.
    """

    protocol: str
    host: str = "localhost"
    port: int | None = None
    database: str = ""
    user: str | None = None
    password: str | None = None
    ssl: bool = False
    options: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_url(cls, url: str) -> ConnectionConfig:
        """Parse a connection URL, discarding driver options it carries."""
        config, _ = parse_url(url)
        return config

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> ConnectionConfig:
        """Build from a plain mapping (``username``/``query`` accepted as aliases)."""
        protocol = values.get("protocol")
        if not protocol:
            raise ConfigError("CONNECTION_URL_NO_PROTOCOL")
        port = values.get("port")
        return cls(
            protocol=str(protocol).lower(),
            host=values.get("host") or "localhost",
            port=int(port) if port is not None else None,
            database=values.get("database") or "",
            user=values.get("user", values.get("username")),
            password=values.get("password"),
            ssl=_truthy(values.get("ssl", False)),
            options=dict(values.get("options", values.get("query")) or {}),
        )

    @classmethod
    def coerce(cls, value: ConnectionConfig | Mapping[str, Any] | str) -> ConnectionConfig:
        if isinstance(value, ConnectionConfig):
            return value
        if isinstance(value, str):
            return cls.from_url(value)
        return cls.from_mapping(value)

    def to_dsn(self, scheme: str | None = None) -> str:
        """Render a URL for the store client (without driver options or ``ssl``)."""
        password = quote(self.password, safe="") if self.password else None
        return self._render(scheme or self.protocol, password)

    def redacted(self) -> str:
        """URL with the password masked, for logs."""
        return self._render(self.protocol, "***" if self.password else None)

    def _render(self, scheme: str, password: str | None) -> str:
        netloc = ""
        if self.user:
            netloc = quote(self.user, safe="")
            if password:
                netloc += ":" + password
            netloc += "@"
        netloc += self.host
        if self.port is not None:
            netloc += f":{self.port}"
        dsn = f"{scheme}://{netloc}/{quote(self.database)}"
        if self.options:
            dsn += "?" + urlencode(dict(self.options))
        return dsn


def parse_url(
    url: str | None,
    base_options: DriverOptions | None = None,
) -> tuple[ConnectionConfig, DriverOptions]:
    """Split a connection URL into configuration and driver options.

    ``debug``, ``pool`` and ``connect_timeout`` query parameters become
    :class:`DriverOptions` (applied over ``base_options``) and are removed
    from ``ConnectionConfig.options``; ``ssl`` becomes ``ConnectionConfig.ssl``.

    Raises:
        ConfigError: ``CONNECTION_URL_EMPTY`` for an empty URL,
            ``CONNECTION_URL_NO_PROTOCOL`` when the scheme is missing.
    """
    if not url or not url.strip():
        raise ConfigError("CONNECTION_URL_EMPTY")
    parts = urlsplit(url.strip())
    # "localhost:5432/db" parses with scheme "localhost"; require "://"
    if not parts.scheme or "://" not in url:
        raise ConfigError("CONNECTION_URL_NO_PROTOCOL")

    try:
        port = parts.port
    except ValueError as e:
        raise ConfigError(f"Invalid port in connection URL: {e}", cause=e) from e

    query = dict(parse_qsl(parts.query, keep_blank_values=True))
    lifted = {key: query.pop(key) for key in _OPTION_PARAMS if key in query}
    ssl = _truthy(query.pop("ssl", False))

    options = (base_options or DriverOptions()).updated(lifted)
    config = ConnectionConfig(
        protocol=parts.scheme.lower(),
        host=parts.hostname or "localhost",
        port=port,
        database=unquote(parts.path.lstrip("/")),
        user=unquote(parts.username) if parts.username else None,
        password=unquote(parts.password) if parts.password else None,
        ssl=ssl,
        options=query,
    )
    return config, options


__all__ = [
    "DriverType",
    "ALIASES",
    "DriverOptions",
    "ConnectionConfig",
    "parse_url",
]
