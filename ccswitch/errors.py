from pathlib import Path
from typing import Optional, Union

PathLike = Union[str, Path]


class SwitcherError(Exception):
    """Base class for errors reported to the user without a traceback."""


class ConfigParseError(SwitcherError):
    """A JSON document exists but cannot be used."""

    def __init__(self, path: PathLike, reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Failed to parse {self.path}: {reason}")


class InvalidConfigShape(SwitcherError):
    """Neither the nested nor the flat credential shape yields both values."""


class DuplicateName(SwitcherError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f'Configuration name "{name}" already exists, please use another name')


class OutOfRange(SwitcherError):
    def __init__(self, value: object, size: int):
        self.value = value
        self.size = size
        super().__init__(f"Invalid number: {value}, valid range: 1-{size}")


class PersistenceError(SwitcherError):
    """Writing a file failed; the previous file content is left in place."""

    def __init__(self, path: PathLike, reason: Optional[str] = None):
        self.path = Path(path)
        super().__init__(f"Failed to save {self.path}: {reason}" if reason else f"Failed to save {self.path}")


class ConfigFileError(SwitcherError):
    """The tool preference file cannot be read or written."""
