import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import ConfigParseError, PersistenceError
from .models import AUTH_TOKEN_KEY, BASE_URL_KEY, ENV_KEY, ApiConfig

logger = logging.getLogger(__name__)

API_CONFIGS_FILENAME = "apiConfigs.json"
SETTINGS_FILENAME = "settings.json"
PREFERENCES_FILENAME = "ccs_config.toml"

API_CONFIGS_TEMPLATE: List[Dict[str, Any]] = [
    {
        "name": "example-config",
        "config": {
            "env": {
                AUTH_TOKEN_KEY: "sk-YOUR_API_KEY_HERE",
                BASE_URL_KEY: "https://api.anthropic.com",
                "CLAUDE_CODE_DISABLE_NONESSENTIAL_TRAFFIC": "1",
            },
            "permissions": {"allow": [], "deny": []},
        },
    }
]

SETTINGS_TEMPLATE: Dict[str, Any] = {
    "env": {
        AUTH_TOKEN_KEY: "sk-YOUR_API_KEY_HERE",
        BASE_URL_KEY: "https://api.anthropic.com",
        "CLAUDE_CODE_DISABLE_NONESSENTIAL_TRAFFIC": "1",
    },
    "permissions": {"allow": [], "deny": []},
}


def default_config_dir() -> Path:
    override = os.environ.get("CCS_CONFIG_DIR", "").strip()
    if override:
        return Path(os.path.expanduser(override))
    return Path.home() / ".claude"


def atomic_write_json(path: Path, data: Any, indent: int = 2) -> None:
    """Write JSON through a temp file in the same directory, then rename over ``path``."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    except OSError as exc:
        raise PersistenceError(path, str(exc)) from exc

    try:
        with os.fdopen(fd, "w", encoding="utf-8") as file_obj:
            json.dump(data, file_obj, ensure_ascii=False, indent=indent)
            file_obj.write("\n")
            file_obj.flush()
            os.fsync(file_obj.fileno())
        os.replace(tmp, path)
    except (OSError, TypeError, ValueError) as exc:
        raise PersistenceError(path, str(exc)) from exc
    finally:
        if os.path.exists(tmp):
            try:
                os.remove(tmp)
            except OSError:
                logger.debug("Could not remove temp file %s", tmp)
    logger.debug("Wrote %s", path)


def read_json(path: Path) -> Optional[Any]:
    """Return the parsed document, or None when the file does not exist."""
    if not path.exists():
        return None
    try:
        with open(path, "r", encoding="utf-8") as file_obj:
            return json.load(file_obj)
    except json.JSONDecodeError as exc:
        raise ConfigParseError(path, f"line {exc.lineno} column {exc.colno}: {exc.msg}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigParseError(path, str(exc)) from exc


class ConfigStore:
    """Reads and writes the configuration list and the settings document in one directory."""

    def __init__(self, config_dir: Path):
        self.config_dir = Path(config_dir)

    @property
    def api_configs_file(self) -> Path:
        return self.config_dir / API_CONFIGS_FILENAME

    @property
    def settings_file(self) -> Path:
        return self.config_dir / SETTINGS_FILENAME

    @property
    def preferences_file(self) -> Path:
        return self.config_dir / PREFERENCES_FILENAME

    def ensure_dir(self) -> bool:
        """Create the config directory. Returns True when it was created."""
        if self.config_dir.is_dir():
            return False
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PersistenceError(self.config_dir, str(exc)) from exc
        logger.info("Created config directory %s", self.config_dir)
        return True

    def load_api_configs(self, strict: bool = False) -> List[ApiConfig]:
        """Load the configuration list.

        A missing file is an empty list. A malformed file raises
        ``ConfigParseError`` when ``strict`` and degrades to an empty list
        otherwise, so read-only commands keep working.
        """
        path = self.api_configs_file
        try:
            data = read_json(path)
            if data is None:
                logger.warning("API config file does not exist (%s)", path)
                return []
            if not isinstance(data, list):
                raise ConfigParseError(path, "expected a JSON array of configurations")
            for index, entry in enumerate(data, start=1):
                if not isinstance(entry, dict):
                    raise ConfigParseError(path, f"entry {index} is not a JSON object")
        except ConfigParseError as exc:
            if strict:
                raise
            logger.error("%s", exc)
            return []
        return [ApiConfig.from_dict(entry) for entry in data]

    def save_api_configs(self, configs: List[ApiConfig]) -> None:
        atomic_write_json(self.api_configs_file, [config.to_dict() for config in configs])

    def load_settings(self, strict: bool = False) -> Dict[str, Any]:
        """Load the settings document; missing or (non-strict) unreadable means ``{"env": {}}``."""
        path = self.settings_file
        try:
            data = read_json(path)
            if data is None:
                return {ENV_KEY: {}}
            if not isinstance(data, dict):
                raise ConfigParseError(path, "expected a JSON object")
        except ConfigParseError as exc:
            if strict:
                raise
            logger.error("%s", exc)
            return {ENV_KEY: {}}
        return data

    def save_settings(self, settings: Dict[str, Any]) -> None:
        atomic_write_json(self.settings_file, settings)

    def ensure_template(self, path: Path) -> bool:
        """Write an example file at ``path`` when missing. Returns True when created."""
        if path.exists():
            return False
        if path == self.api_configs_file:
            template: Any = API_CONFIGS_TEMPLATE
        elif path == self.settings_file:
            template = SETTINGS_TEMPLATE
        else:
            raise ValueError(f"No template for {path}")
        self.ensure_dir()
        atomic_write_json(path, template)
        return True
