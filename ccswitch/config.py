from dataclasses import asdict, dataclass
from pathlib import Path

import toml

from .errors import ConfigFileError
from .store import PREFERENCES_FILENAME


@dataclass
class AppConfig:
    """Tool preferences kept next to the managed files."""

    probe_timeout: float = 30.0
    max_workers: int = 8
    proxy: str = ""
    editor: str = ""
    webhook_url: str = ""
    debug: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "AppConfig":
        """Create AppConfig from a dictionary, ignoring unknown keys."""
        return cls(**{key: value for key, value in data.items() if key in cls.__annotations__})

    def to_dict(self) -> dict:
        return dict(asdict(self))


class ConfigManager:
    """Loads and saves ``ccs_config.toml`` in the config directory."""

    def __init__(self, config_dir: Path):
        self.config_file = Path(config_dir) / PREFERENCES_FILENAME
        self.default_config = AppConfig()

    def save_config(self, **kwargs) -> AppConfig:
        """Update the given fields and persist the whole file."""
        config_dict = self.load_config().to_dict()
        for key, value in kwargs.items():
            if value is not None and key in config_dict:
                config_dict[key] = value

        try:
            self.config_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file, "w", encoding="utf-8") as file_obj:
                toml.dump(config_dict, file_obj)
            self.config_file.chmod(0o600)
        except OSError as exc:
            raise ConfigFileError(f"Failed to save config: {exc}") from exc
        return AppConfig.from_dict(config_dict)

    def load_config(self) -> AppConfig:
        if not self.config_file.exists():
            return AppConfig()
        try:
            with open(self.config_file, "r", encoding="utf-8") as file_obj:
                config_dict = toml.load(file_obj)
        except (OSError, toml.TomlDecodeError) as exc:
            raise ConfigFileError(f"Failed to load config {self.config_file}: {exc}") from exc
        return AppConfig.from_dict({**self.default_config.to_dict(), **config_dict})
