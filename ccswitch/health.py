import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

import httpx

from .http import build_http_client
from .models import ApiConfig

logger = logging.getLogger(__name__)

PROBE_SUFFIXES = ("/v1/models", "/v1/messages", "/health")
DEFAULT_TIMEOUT = 30.0
ANTHROPIC_VERSION = "2023-06-01"
MASK_MARKER = "****"
MASK_PREFIX_LENGTH = 7

ClientFactory = Callable[[str], httpx.Client]


@dataclass
class ProbeResult:
    """Reachability of one distinct base URL."""

    base_url: str
    names: List[str] = field(default_factory=list)
    masked_token: str = ""
    reachable: bool = False
    status_code: Optional[int] = None
    latency_ms: Optional[float] = None
    endpoint: str = ""
    error: str = ""
    timed_out: bool = False
    attempts: int = 0


@dataclass
class _Target:
    base_url: str
    auth_token: str
    names: List[str]


def mask_token(token: Optional[str]) -> str:
    """Show at most ``MASK_PREFIX_LENGTH`` characters and never more than half the token."""
    if not token:
        return "(none)"
    visible = min(MASK_PREFIX_LENGTH, len(token) // 2)
    return f"{token[:visible]}{MASK_MARKER}"


def classify_status(status_code: int) -> bool:
    """2xx and 4xx prove the endpoint exists and accepts connections."""
    return 200 <= status_code < 300 or 400 <= status_code < 500


def normalize_base_url(base_url: str) -> str:
    return (base_url or "").strip().rstrip("/")


class HealthProber:
    """Probes every distinct base URL once, walking ``PROBE_SUFFIXES`` until one responds."""

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        max_workers: int = 8,
        proxy: str = "",
        client_factory: Optional[ClientFactory] = None,
        suffixes: Sequence[str] = PROBE_SUFFIXES,
    ):
        self.timeout = timeout
        self.max_workers = max(1, max_workers)
        self.proxy = proxy
        self.suffixes = tuple(suffixes)
        self.client_factory = client_factory or self._default_client

    def _default_client(self, base_url: str) -> httpx.Client:
        return build_http_client(base_url, proxy=self.proxy, timeout=self.timeout)

    @staticmethod
    def collect_targets(configs: Sequence[ApiConfig]) -> List[_Target]:
        """Group configurations by base URL, keeping first-appearance order."""
        targets: Dict[str, _Target] = {}
        for config in configs:
            base_url = normalize_base_url(config.base_url or "")
            if not base_url:
                logger.warning('Configuration "%s" has no base URL, skipping', config.name)
                continue
            target = targets.get(base_url)
            if target is None:
                targets[base_url] = _Target(base_url=base_url, auth_token=config.auth_token or "", names=[config.name])
            else:
                target.names.append(config.name)
        return list(targets.values())

    def probe_all(self, configs: Sequence[ApiConfig]) -> List[ProbeResult]:
        targets = self.collect_targets(configs)
        if not targets:
            return []
        workers = min(self.max_workers, len(targets))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(self._probe_target, targets))

    def _probe_target(self, target: _Target) -> ProbeResult:
        result = ProbeResult(base_url=target.base_url, names=list(target.names), masked_token=mask_token(target.auth_token))
        try:
            client = self.client_factory(target.base_url)
        except Exception as exc:
            result.error = f"{type(exc).__name__}: {exc}"
            return result

        headers = {
            "x-api-key": target.auth_token,
            "Authorization": f"Bearer {target.auth_token}",
            "anthropic-version": ANTHROPIC_VERSION,
        }
        try:
            with client:
                for suffix in self.suffixes:
                    self.probe_once(client, target.base_url + suffix, headers, result)
                    if result.reachable:
                        break
        except Exception as exc:
            logger.debug("Probe of %s failed", target.base_url, exc_info=True)
            result.reachable = False
            result.error = f"{type(exc).__name__}: {exc}"
        return result

    def probe_once(self, client: httpx.Client, url: str, headers: Dict[str, str], result: ProbeResult) -> None:
        """Issue one GET and record its outcome into ``result``.

        Only the status line and headers are awaited; the body is never read,
        so a server trickling its body cannot hold the attempt open.
        """
        result.attempts += 1
        result.endpoint = url
        result.status_code = None
        result.timed_out = False
        started = time.perf_counter()
        try:
            with client.stream("GET", url, headers=headers, timeout=self.timeout) as response:
                status_code = response.status_code
        except httpx.TimeoutException:
            result.reachable = False
            result.timed_out = True
            result.error = f"timeout after {self.timeout:g}s"
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
            # ValueError covers UnicodeEncodeError from non-ASCII header values.
            result.reachable = False
            result.error = f"{type(exc).__name__}: {exc}"
        else:
            result.status_code = status_code
            result.reachable = classify_status(status_code)
            result.error = "" if result.reachable else f"HTTP {status_code}"
        result.latency_ms = (time.perf_counter() - started) * 1000
        logger.debug("Probe %s -> %s", url, result.status_code or result.error)
