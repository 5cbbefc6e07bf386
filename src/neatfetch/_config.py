import os
from functools import lru_cache
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ._cancellation import CancellationToken
from ._utils import normalize_headers
from ._utils.constants import (
    DEFAULT_RETRY_DELAY,
    ENV_BASE_URL,
    ENV_ORIGIN,
    ENV_RETRY,
    ENV_RETRY_DELAY,
    ENV_TIMEOUT,
    ENV_TOTAL_TIMEOUT,
)


class Settings(BaseModel):
    """Process-wide defaults, read from ``NEATFETCH_*`` environment variables.

    They only fill in what a request leaves unset.
    """

    timeout: Optional[float] = Field(default=None, gt=0)
    total_timeout: Optional[float] = Field(default=None, gt=0)
    retry: int = Field(default=0, ge=0)
    retry_delay: float = Field(default=DEFAULT_RETRY_DELAY, ge=0)
    base_url: Optional[str] = None
    origin: Optional[str] = None


_ENV_FIELDS: dict[str, str] = {
    "timeout": ENV_TIMEOUT,
    "total_timeout": ENV_TOTAL_TIMEOUT,
    "retry": ENV_RETRY,
    "retry_delay": ENV_RETRY_DELAY,
    "base_url": ENV_BASE_URL,
    "origin": ENV_ORIGIN,
}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    values = {
        field: os.environ[env_var]
        for field, env_var in _ENV_FIELDS.items()
        if os.environ.get(env_var)
    }
    return Settings.model_validate(values)


def clear_settings_cache() -> None:
    """Clear the cached settings. Intended for tests."""
    get_settings.cache_clear()


def copy_params(params: dict[str, Any]) -> dict[str, Any]:
    return {
        key: list(value) if isinstance(value, list) else value
        for key, value in params.items()
    }


class RequestConfig(BaseModel):
    """Immutable description of a request.

    Unknown keyword arguments are accepted and forwarded to the transport as
    pass-through options (for the default transport: any extra keyword of
    ``httpx.AsyncClient.request`` such as ``auth`` or ``follow_redirects``).

    Attributes:
        method: HTTP verb.
        body: Transport body, already serialized.
        headers: Header mapping, normalized to lowercase keys.
        params: Query parameters; values may be scalars or lists.
        base_url: Prefix for relative targets.
        timeout: Per-attempt timeout in seconds.
        total_timeout: Deadline in seconds spanning every attempt.
        retry: Number of retries after the first attempt.
        retry_delay: Base backoff in seconds, multiplied by the attempt number.
        signal: Caller-held cancellation token.
        transport: Async callable performing one network call.
    """

    model_config = ConfigDict(
        frozen=True,
        arbitrary_types_allowed=True,
        extra="allow",
    )

    method: str = "GET"
    body: Any = None
    headers: dict[str, str] = Field(default_factory=dict)
    params: dict[str, Any] = Field(default_factory=dict)
    base_url: Optional[str] = None
    timeout: Optional[float] = Field(default=None, gt=0)
    total_timeout: Optional[float] = Field(default=None, gt=0)
    retry: Optional[int] = Field(default=None, ge=0)
    retry_delay: Optional[float] = Field(default=None, ge=0)
    signal: Optional[CancellationToken] = None
    transport: Optional[Callable[..., Any]] = None

    @field_validator("method", mode="before")
    @classmethod
    def upper_method(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value

    @field_validator("headers", mode="before")
    @classmethod
    def normalize_header_keys(cls, value: Any) -> dict[str, str]:
        return normalize_headers(value)

    @field_validator("params", mode="before")
    @classmethod
    def default_params(cls, value: Any) -> Any:
        return {} if value is None else value

    def copy_fields(self) -> dict[str, Any]:
        """Structural copy of every field, extras included.

        Header and param mappings (and list values inside params) are fresh
        objects, so configs derived from the copy share nothing mutable.
        """
        data = {name: getattr(self, name) for name in type(self).model_fields}
        data.update(self.model_extra or {})
        data["headers"] = dict(self.headers)
        data["params"] = copy_params(self.params)
        return data

    @property
    def explicit_fields(self) -> set[str]:
        """Names of the fields the caller set, pass-through options included."""
        return set(self.model_fields_set) | set(self.model_extra or {})

    def derive(self, **overrides: Any) -> "RequestConfig":
        """Build a new config from this one with ``overrides`` replacing fields.

        Only fields explicitly set on this config (plus ``overrides``) count as
        set on the result, so a derived config still merges over a base one
        without its defaults winning.
        """
        fields = self.copy_fields()
        data = {name: fields[name] for name in self.explicit_fields}
        data.update(overrides)
        if data.get("params"):
            data["params"] = copy_params(data["params"])
        return type(self)(**data)

    @property
    def passthrough(self) -> dict[str, Any]:
        return dict(self.model_extra or {})
