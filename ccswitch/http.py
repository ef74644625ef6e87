"""httpx client construction shared by the health prober and webhook delivery."""

import os
from typing import Iterator, Optional, Tuple
from urllib.parse import urlsplit, urlunsplit

import httpx
from httpx_socks import SyncProxyTransport

SOCKS_SCHEMES = {"socks", "socks5", "socks5h", "socks4", "socks4a"}


def build_http_client(target_url: str, proxy: str = "", timeout: float = 30.0) -> httpx.Client:
    """Client for health probes and webhook posts to ``target_url``.

    Redirects are followed, so a probe is classified on the final response
    rather than on a 3xx from a gateway in front of the API.
    The proxy is ``proxy`` from the preferences file when set, otherwise the
    HTTPS_PROXY/HTTP_PROXY/ALL_PROXY variable for the target's scheme unless
    NO_PROXY exempts the host. Environment proxies are resolved here rather
    than through httpx's ``trust_env`` because httpx rejects ``socks://``.
    """
    proxy_url = resolve_proxy_url(target_url, proxy)
    if not proxy_url:
        return httpx.Client(timeout=timeout, follow_redirects=True, trust_env=False)

    scheme = urlsplit(proxy_url).scheme.lower()
    if scheme in SOCKS_SCHEMES:
        transport = SyncProxyTransport.from_url(proxy_url)
        return httpx.Client(transport=transport, timeout=timeout, follow_redirects=True, trust_env=False)

    return httpx.Client(proxy=proxy_url, timeout=timeout, follow_redirects=True, trust_env=False)


def resolve_proxy_url(target_url: str, proxy: str = "") -> Optional[str]:
    explicit = (proxy or "").strip()
    if explicit:
        return normalize_proxy_url(explicit)

    env_proxy = get_env_proxy_url(target_url)
    if env_proxy:
        return normalize_proxy_url(env_proxy)
    return None


def normalize_proxy_url(proxy_url: str) -> str:
    """Treat plain ``socks://`` as ``socks5://``, which is what httpx-socks expects."""
    value = (proxy_url or "").strip()
    if not value:
        return value
    parsed = urlsplit(value)
    if parsed.scheme.lower() == "socks":
        return urlunsplit(("socks5", parsed.netloc, parsed.path, parsed.query, parsed.fragment))
    return value


def get_env_proxy_url(target_url: str) -> Optional[str]:
    target = (target_url or "").strip()
    if not target:
        return None

    parsed = urlsplit(target)
    scheme = (parsed.scheme or "https").lower()
    hostname = (parsed.hostname or "").lower()
    try:
        port = parsed.port
    except ValueError:
        port = None

    if hostname and is_no_proxy_host(hostname, port):
        return None

    if scheme == "https":
        return _get_env_var("HTTPS_PROXY") or _get_env_var("ALL_PROXY")
    if scheme == "http":
        return _get_env_var("HTTP_PROXY") or _get_env_var("ALL_PROXY")
    return _get_env_var("ALL_PROXY") or _get_env_var("HTTPS_PROXY") or _get_env_var("HTTP_PROXY")


def _get_env_var(key: str) -> Optional[str]:
    return os.environ.get(key) or os.environ.get(key.lower())


def _no_proxy_entries(raw: str) -> Iterator[Tuple[str, Optional[int]]]:
    """Yield ``(host, port)`` pairs from a NO_PROXY value; port is None when absent."""
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        host, _, port = entry.rpartition(":")
        if host and ":" not in host and port.isdigit():
            yield host.strip().lstrip(".").lower(), int(port)
        else:
            yield entry.lstrip(".").lower(), None


def is_no_proxy_host(hostname: str, port: Optional[int]) -> bool:
    """True when NO_PROXY exempts ``hostname``.

    Entries may be ``*``, a host, a domain (with or without a leading dot,
    matching its subdomains) and may carry a ``:port``.
    """
    raw = _get_env_var("NO_PROXY") or ""
    host = (hostname or "").strip(".").lower()
    for entry_host, entry_port in _no_proxy_entries(raw):
        if entry_host == "*":
            return True
        if entry_port is not None and port is not None and entry_port != port:
            continue
        if entry_host and (host == entry_host or host.endswith("." + entry_host)):
            return True
    return False
