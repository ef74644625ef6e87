__version__ = "1.8.0"

from .errors import (
    ConfigFileError,
    ConfigParseError,
    DuplicateName,
    InvalidConfigShape,
    OutOfRange,
    PersistenceError,
    SwitcherError,
)
from .health import HealthProber, ProbeResult
from .merger import apply_selection
from .models import ApiConfig
from .resolver import resolve_active
from .store import ConfigStore

__all__ = [
    "ApiConfig",
    "ConfigFileError",
    "ConfigParseError",
    "ConfigStore",
    "DuplicateName",
    "HealthProber",
    "InvalidConfigShape",
    "OutOfRange",
    "PersistenceError",
    "ProbeResult",
    "SwitcherError",
    "apply_selection",
    "resolve_active",
]
