import os
import ssl
from typing import Any, Optional

from .constants import ENV_DISABLE_SSL, ENV_HTTP_TIMEOUT

DEFAULT_HTTP_TIMEOUT = 30.0

# checked in order, the first one set wins
CA_BUNDLE_ENV_VARS = ("SSL_CERT_FILE", "REQUESTS_CA_BUNDLE")
CA_DIR_ENV_VAR = "SSL_CERT_DIR"


def expand_path(path: Optional[str]) -> Optional[str]:
    """Expand ``$VARS`` and ``~`` in a path taken from the environment."""
    if not path:
        return None
    return os.path.expanduser(os.path.expandvars(path))


def _ca_bundle_from_env() -> Optional[str]:
    for env_var in CA_BUNDLE_ENV_VARS:
        path = expand_path(os.environ.get(env_var))
        if path:
            return path
    return None


def create_ssl_context() -> ssl.SSLContext:
    """TLS context for the default transport.

    Uses the operating system trust store through ``truststore``. When it is
    unavailable, falls back to a CA bundle named by ``SSL_CERT_FILE`` or
    ``REQUESTS_CA_BUNDLE``, else the ``certifi`` bundle, plus ``SSL_CERT_DIR``.
    """
    try:
        import truststore

        return truststore.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    except ImportError:
        import certifi

        return ssl.create_default_context(
            cafile=_ca_bundle_from_env() or certifi.where(),
            capath=expand_path(os.environ.get(CA_DIR_ENV_VAR)),
        )


def _ssl_disabled() -> bool:
    return os.environ.get(ENV_DISABLE_SSL, "").lower() in ("1", "true", "yes")


def get_httpx_client_kwargs() -> dict[str, Any]:
    """Default keyword arguments for the ``httpx.AsyncClient`` of the default transport.

    Timeouts are left to the retry executor, so the client only gets a
    generous socket-level timeout (``NEATFETCH_HTTP_TIMEOUT``, 30s by default).
    """
    timeout = os.environ.get(ENV_HTTP_TIMEOUT)
    return {
        "follow_redirects": True,
        "timeout": float(timeout) if timeout else DEFAULT_HTTP_TIMEOUT,
        "verify": False if _ssl_disabled() else create_ssl_context(),
    }
