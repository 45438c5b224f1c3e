"""Shared core utilities for build orchestration."""

from .command_runner import (
    CommandResult,
    CommandRunner,
    ExternalCommandError,
    RecordingCommandRunner,
    SubprocessCommandRunner,
)
from .config_loader import (
    ConfigLoader,
    FILE_LOADERS,
    find_config_file,
    load_config_file,
    normalize_string_list,
)

__all__ = [
    "CommandResult",
    "CommandRunner",
    "ExternalCommandError",
    "RecordingCommandRunner",
    "SubprocessCommandRunner",
    "ConfigLoader",
    "FILE_LOADERS",
    "find_config_file",
    "load_config_file",
    "normalize_string_list",
]
