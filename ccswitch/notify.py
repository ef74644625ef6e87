"""Webhook notifications fired by a ``Stop`` hook in the settings file."""

import logging
import os
import socket
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlsplit

import httpx

from .config import ConfigManager
from .errors import InvalidConfigShape, SwitcherError
from .http import build_http_client
from .store import ConfigStore

logger = logging.getLogger(__name__)

HOOK_EVENT = "Stop"
HOOK_COMMAND = "ccs notify send"
WEBHOOK_TIMEOUT = 10.0


class NotifyError(SwitcherError):
    """Webhook is missing, invalid, or delivery failed."""


@dataclass
class NotifyStatus:
    configured: bool
    webhook: str
    hook_installed: bool


def validate_webhook_url(url: str) -> Optional[str]:
    """Return an error message for an unusable URL, None otherwise."""
    parsed = urlsplit((url or "").strip())
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return "Webhook URL must start with http:// or https://"
    return None


def mask_webhook_url(url: str) -> str:
    if not url:
        return "(not configured)"
    parsed = urlsplit(url)
    return f"{parsed.scheme}://{parsed.netloc}/****"


def build_webhook_payload(url: str, message: str) -> Dict[str, Any]:
    host = (urlsplit(url).hostname or "").lower()
    if "feishu" in host or "larksuite" in host:
        return {"msg_type": "text", "content": {"text": message}}
    if "slack.com" in host:
        return {"text": message}
    if "discord.com" in host or "discordapp.com" in host:
        return {"content": message}
    return {"msgtype": "text", "text": {"content": message}}


def _stop_hooks(settings: Dict[str, Any], create: bool) -> Optional[List[Any]]:
    hooks = settings.get("hooks")
    if hooks is None:
        if not create:
            return None
        hooks = settings["hooks"] = {}
    if not isinstance(hooks, dict):
        raise InvalidConfigShape('Settings field "hooks" must be an object')

    entries = hooks.get(HOOK_EVENT)
    if entries is None:
        if not create:
            return None
        entries = hooks[HOOK_EVENT] = []
    if not isinstance(entries, list):
        raise InvalidConfigShape(f'Settings field "hooks.{HOOK_EVENT}" must be an array')
    return entries


def hook_installed(settings: Dict[str, Any]) -> bool:
    try:
        entries = _stop_hooks(settings, create=False)
    except InvalidConfigShape:
        return False
    for entry in entries or []:
        if not isinstance(entry, dict):
            continue
        for hook in entry.get("hooks") or []:
            if isinstance(hook, dict) and hook.get("command") == HOOK_COMMAND:
                return True
    return False


class NotifyManager:
    def __init__(
        self,
        store: ConfigStore,
        config_manager: ConfigManager,
        client_factory: Optional[Callable[[str], httpx.Client]] = None,
    ):
        self.store = store
        self.config_manager = config_manager
        self.client_factory = client_factory or self._default_client

    def _default_client(self, url: str) -> httpx.Client:
        proxy = self.config_manager.load_config().proxy
        return build_http_client(url, proxy=proxy, timeout=WEBHOOK_TIMEOUT)

    def setup(self, webhook_url: str) -> bool:
        """Store the webhook and install the hook. Returns True when the hook was newly added."""
        webhook_url = (webhook_url or "").strip()
        error = validate_webhook_url(webhook_url)
        if error:
            raise NotifyError(error)
        self.config_manager.save_config(webhook_url=webhook_url)
        return self.install_hook()

    def install_hook(self) -> bool:
        settings = self.store.load_settings(strict=True)
        if hook_installed(settings):
            return False
        _stop_hooks(settings, create=True).append({"hooks": [{"type": "command", "command": HOOK_COMMAND}]})
        self.store.save_settings(settings)
        logger.debug("Installed %s hook in %s", HOOK_EVENT, self.store.settings_file)
        return True

    def status(self) -> NotifyStatus:
        webhook_url = self.config_manager.load_config().webhook_url
        return NotifyStatus(
            configured=bool(webhook_url),
            webhook=mask_webhook_url(webhook_url),
            hook_installed=hook_installed(self.store.load_settings()),
        )

    def send(self, message: str) -> int:
        """POST ``message`` to the configured webhook and return the HTTP status."""
        webhook_url = self.config_manager.load_config().webhook_url
        if not webhook_url:
            raise NotifyError("Webhook is not configured, run: ccs notify setup")

        payload = build_webhook_payload(webhook_url, message)
        try:
            with self.client_factory(webhook_url) as client:
                response = client.post(webhook_url, json=payload)
        except httpx.HTTPError as exc:
            raise NotifyError(f"Webhook delivery failed: {type(exc).__name__}: {exc}") from exc

        if response.status_code >= 400:
            raise NotifyError(f"Webhook returned HTTP {response.status_code}")
        return response.status_code

    def send_test(self) -> int:
        return self.send(f"[ccs] Test notification from {socket.gethostname()}")

    def send_finished(self, cwd: Optional[str] = None) -> int:
        return self.send(f"[ccs] Claude Code task finished in {cwd or os.getcwd()}")
