from typing import Any, Iterable, Mapping, Optional, Sequence

from .models import AUTH_TOKEN_KEY, BASE_URL_KEY, CONFIG_NAME_KEY, ENV_KEY, ApiConfig

CREDENTIAL_KEYS = (BASE_URL_KEY, AUTH_TOKEN_KEY)


def credentials_match(left: Mapping[str, Any], right: Mapping[str, Any], keys: Iterable[str] = CREDENTIAL_KEYS) -> bool:
    """Structural equality restricted to ``keys``."""
    return all(left.get(key) == right.get(key) for key in keys)


def resolve_active(settings: Mapping[str, Any], configs: Sequence[ApiConfig]) -> Optional[ApiConfig]:
    """Find the configuration the settings document currently points at.

    The stored ``_configName`` wins. Without it, or when no entry carries that
    name, the first entry whose base URL and token both equal the settings'
    env values is returned. None when nothing matches.
    """
    if not settings or not configs:
        return None

    active_name = settings.get(CONFIG_NAME_KEY)
    if active_name:
        for config in configs:
            if config.name == active_name:
                return config

    env = settings.get(ENV_KEY)
    if not isinstance(env, Mapping):
        return None
    for config in configs:
        if not config.has_credentials:
            continue
        candidate = {BASE_URL_KEY: config.base_url, AUTH_TOKEN_KEY: config.auth_token}
        if credentials_match(env, candidate):
            return config
    return None
