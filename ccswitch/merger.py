"""Selective update of the settings document.

Only three paths are ever written: ``_configName``, ``env.ANTHROPIC_AUTH_TOKEN``
and ``env.ANTHROPIC_BASE_URL``. Everything else (permissions, model, hooks,
statusLine, mcpServers, ...) is left as loaded, in its original key order.
"""

import logging
from typing import Any, Dict, Tuple

from .errors import InvalidConfigShape
from .models import AUTH_TOKEN_KEY, BASE_URL_KEY, CONFIG_NAME_KEY, ENV_KEY, ApiConfig
from .store import ConfigStore

logger = logging.getLogger(__name__)


def extract_credentials(selected: ApiConfig) -> Tuple[str, str]:
    """Return ``(auth_token, base_url)`` or raise ``InvalidConfigShape``."""
    if not selected.has_credentials:
        raise InvalidConfigShape(
            f'Configuration "{selected.name}" has no {AUTH_TOKEN_KEY}/{BASE_URL_KEY} '
            "under config.env and no authToken/baseUrl fields"
        )
    return selected.auth_token, selected.base_url


def apply_selection(selected: ApiConfig, settings: Dict[str, Any]) -> Dict[str, Any]:
    """Point ``settings`` at ``selected`` in place and return it."""
    auth_token, base_url = extract_credentials(selected)

    env = settings.get(ENV_KEY)
    if env is None:
        env = settings[ENV_KEY] = {}
    elif not isinstance(env, dict):
        raise InvalidConfigShape(f'Settings field "{ENV_KEY}" must be an object, got {type(env).__name__}')

    settings[CONFIG_NAME_KEY] = selected.name
    env[AUTH_TOKEN_KEY] = auth_token
    env[BASE_URL_KEY] = base_url
    return settings


def save_selection(store: ConfigStore, selected: ApiConfig) -> Dict[str, Any]:
    """Read the settings file, apply ``selected`` and write it back atomically."""
    settings = store.load_settings(strict=True)
    apply_selection(selected, settings)
    store.save_settings(settings)
    logger.debug("Switched %s to configuration %s", store.settings_file, selected.name)
    return settings
