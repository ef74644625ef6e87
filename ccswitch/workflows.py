"""List/switch, add and remove flows over the configuration list.

Nothing here renders anything; ``commands.py`` drives these with whatever
prompt implementation the UI provides.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from .errors import DuplicateName, OutOfRange, SwitcherError
from .merger import save_selection
from .models import ApiConfig
from .resolver import resolve_active
from .store import ConfigStore

logger = logging.getLogger(__name__)

Validator = Callable[[str], Optional[str]]


@dataclass
class WizardStep:
    """One prompt of a wizard: ``validate`` returns an error message or None."""

    key: str
    message: str
    validate: Optional[Validator] = None
    default: str = ""
    secret: bool = False

    def check(self, answer: str) -> Optional[str]:
        if self.validate is None:
            return None
        return self.validate(answer)


def run_wizard(
    steps: Sequence[WizardStep],
    ask: Callable[[WizardStep], str],
    on_invalid: Callable[[str], None],
) -> Dict[str, str]:
    """Ask every step in order, repeating a step until its answer validates."""
    answers: Dict[str, str] = {}
    for step in steps:
        while True:
            answer = (ask(step) or "").strip()
            error = step.check(answer)
            if error is None:
                break
            on_invalid(error)
        answers[step.key] = answer
    return answers


def required(label: str) -> Validator:
    def _validate(answer: str) -> Optional[str]:
        return None if answer.strip() else f"{label} cannot be empty"

    return _validate


def parse_ordinal(text: str, size: int) -> int:
    """Turn a 1-based ordinal typed by the user into a list index."""
    try:
        ordinal = int(str(text).strip())
    except ValueError:
        raise OutOfRange(text, size) from None
    if ordinal < 1 or ordinal > size:
        raise OutOfRange(text, size)
    return ordinal - 1


def ordinal_validator(size: int) -> Validator:
    def _validate(answer: str) -> Optional[str]:
        try:
            parse_ordinal(answer, size)
        except OutOfRange as exc:
            return str(exc)
        return None

    return _validate


@dataclass
class ConfigSnapshot:
    configs: List[ApiConfig] = field(default_factory=list)
    active: Optional[ApiConfig] = None

    def is_active(self, config: ApiConfig) -> bool:
        return self.active is not None and config.name == self.active.name


@dataclass
class RemoveOutcome:
    removed: ApiConfig
    was_active: bool
    remaining: int


class ConfigWorkflows:
    """Operations behind ``list``, ``add`` and ``remove``."""

    def __init__(self, store: ConfigStore):
        self.store = store

    def snapshot(self, strict: bool = False) -> ConfigSnapshot:
        configs = self.store.load_api_configs(strict=strict)
        settings = self.store.load_settings()
        return ConfigSnapshot(configs=configs, active=resolve_active(settings, configs))

    @staticmethod
    def pick(snapshot: ConfigSnapshot, ordinal: str) -> ApiConfig:
        return snapshot.configs[parse_ordinal(ordinal, len(snapshot.configs))]

    def switch_to(self, selected: ApiConfig, snapshot: ConfigSnapshot) -> bool:
        """Write ``selected`` into the settings file. False when it is already active."""
        if snapshot.is_active(selected):
            logger.debug("Configuration %s already active, settings left untouched", selected.name)
            return False
        save_selection(self.store, selected)
        snapshot.active = selected
        return True

    @staticmethod
    def check_new_name(name: str, configs: Sequence[ApiConfig]) -> None:
        name = name.strip()
        if not name:
            raise SwitcherError("Configuration name cannot be empty")
        if any(config.name == name for config in configs):
            raise DuplicateName(name)

    def add_steps(self, configs: Sequence[ApiConfig]) -> List[WizardStep]:
        def validate_name(answer: str) -> Optional[str]:
            try:
                self.check_new_name(answer, configs)
            except SwitcherError as exc:
                return str(exc)
            return None

        return [
            WizardStep("name", "Configuration name:", validate_name),
            WizardStep("base_url", "API Base URL:", required("API Base URL")),
            WizardStep("auth_token", "Auth Token:", required("Auth Token"), secret=True),
            WizardStep("model", "Model (optional, press Enter to skip):"),
        ]

    @staticmethod
    def build_config(answers: Dict[str, str]) -> ApiConfig:
        return ApiConfig.create(
            name=answers["name"].strip(),
            base_url=answers["base_url"].strip(),
            auth_token=answers["auth_token"].strip(),
            model=(answers.get("model") or "").strip() or None,
        )

    def add(self, new_config: ApiConfig) -> int:
        """Append ``new_config`` and return the new total."""
        configs = self.store.load_api_configs(strict=True)
        self.check_new_name(new_config.name, configs)
        configs.append(new_config)
        self.store.save_api_configs(configs)
        logger.debug("Added configuration %s", new_config.name)
        return len(configs)

    def remove(self, index: int, snapshot: ConfigSnapshot) -> RemoveOutcome:
        """Delete the entry at 0-based ``index``. The settings file is not touched."""
        configs = self.store.load_api_configs(strict=True)
        if index < 0 or index >= len(configs):
            raise OutOfRange(index + 1, len(configs))
        removed = configs.pop(index)
        self.store.save_api_configs(configs)
        logger.debug("Removed configuration %s", removed.name)
        return RemoveOutcome(removed=removed, was_active=snapshot.is_active(removed), remaining=len(configs))
