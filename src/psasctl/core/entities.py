"""User kinds managed by the console.

Three backends keep accounts in three different shapes: panel users come
from the panel's JSON state, TrustTunnel users from the credentials record
file and SOCKS users from a JSON list. Each shape is a small dataclass that
also exposes the common selectable-entity capability, so the picker and the
resolver work on any of them without knowing which backend they came from.
"""

from dataclasses import asdict, dataclass
from typing import Any, Protocol

from psasctl.core.exceptions import BackendError


class SelectableEntity(Protocol):
    """Capability shared by every user kind."""

    @property
    def primary_id(self) -> str: ...

    @property
    def display_name(self) -> str: ...

    @property
    def secret(self) -> str: ...

    @property
    def enabled(self) -> bool | None: ...

    def matches(self, query: str) -> bool: ...


def normalize_socks_login(login: str) -> str:
    return login.strip().lower()


def _contains(value: str, query: str) -> bool:
    return query in value.lower()


def _number(data: dict[str, Any], key: str, cast: type) -> Any:
    value = data.get(key)
    if value in (None, ""):
        return cast(0)
    try:
        return cast(value)
    except (TypeError, ValueError) as e:
        raise BackendError(f"invalid panel user field {key}: {value!r}") from e


@dataclass
class PanelUser:
    """A user of the central panel, keyed by UUID."""

    uuid: str
    name: str
    enable: bool = False
    usage_limit_gb: float = 0.0
    package_days: int = 0
    mode: str = ""

    @property
    def primary_id(self) -> str:
        return self.uuid

    @property
    def display_name(self) -> str:
        return self.name

    @property
    def secret(self) -> str:
        return self.uuid

    @property
    def enabled(self) -> bool | None:
        return self.enable

    def matches(self, query: str) -> bool:
        q = query.lower()
        return not q or _contains(self.name, q) or _contains(self.uuid, q)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "PanelUser":
        """Build a user from the panel's JSON representation.

        Raises:
            BackendError: If a numeric field holds something that is not a number
        """
        return cls(
            uuid=str(data.get("uuid") or "").strip(),
            name=str(data.get("name") or "").strip(),
            enable=as_bool(data.get("enable")),
            usage_limit_gb=_number(data, "usage_limit_GB", float),
            package_days=_number(data, "package_days", int),
            mode=str(data.get("mode") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class TrustUser:
    """A TrustTunnel client credential; the username is its identity."""

    username: str
    password: str

    @property
    def primary_id(self) -> str:
        return self.username

    @property
    def display_name(self) -> str:
        return self.username

    @property
    def secret(self) -> str:
        return self.password

    @property
    def enabled(self) -> bool | None:
        return None

    def matches(self, query: str) -> bool:
        q = query.lower()
        return not q or _contains(self.username, q)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class SocksUser:
    """A Dante SOCKS login backed by a system account."""

    name: str
    password: str
    system_user: str = ""

    @property
    def primary_id(self) -> str:
        return self.name

    @property
    def display_name(self) -> str:
        return self.name

    @property
    def secret(self) -> str:
        return self.password

    @property
    def enabled(self) -> bool | None:
        return None

    @property
    def account(self) -> str:
        """System account the login authenticates against."""
        return self.system_user.strip() or normalize_socks_login(self.name)

    def matches(self, query: str) -> bool:
        q = query.lower()
        return not q or _contains(self.name, q)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SocksUser":
        name = normalize_socks_login(str(data.get("name") or ""))
        system_user = str(data.get("system_user") or "").strip()
        return cls(
            name=name,
            password=str(data.get("password") or ""),
            system_user=system_user or name,
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["system_user"] = self.account
        return data


def as_bool(value: Any) -> bool:
    """Interpret the loose booleans found in panel JSON (``1``, ``"true"``, ``"on"``)."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "y", "on", "enable", "enabled")
    return False
