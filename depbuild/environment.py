"""Load machine-local or shared environment settings into the process."""
from __future__ import annotations

from pathlib import Path
from typing import Any, List, Mapping, MutableMapping
import logging
import os
import re

from core.config_loader import FILE_LOADERS, find_config_file, load_config_file, normalize_string_list

from .errors import EnvironmentScriptNotFound
from .state import InitState

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path(__file__).resolve().parent / "config"

_PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*env\.([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")
_ALLOWED_KEYS = {"environment", "path_prepend"}


def candidate_files(name: str, search_dir: Path) -> List[Path]:
    """Return every file name ``initialize_environment`` looks for, in priority order."""

    candidates: List[Path] = []
    for stem in (f"{name}.local", name):
        candidates.extend(search_dir / f"{stem}{suffix}" for suffix in FILE_LOADERS)
    return candidates


def _expand(value: Any, environ: Mapping[str, str]) -> str:
    def replacement(match: re.Match[str]) -> str:
        return environ.get(match.group(1), "")

    return _PLACEHOLDER_PATTERN.sub(replacement, str(value))


def apply_environment_file(path: Path, environ: MutableMapping[str, str]) -> None:
    data = load_config_file(path)
    unknown = {str(key) for key in data.keys()} - _ALLOWED_KEYS
    if unknown:
        raise ValueError(f"Environment file '{path}' contains unknown keys: {', '.join(sorted(unknown))}")

    variables = data.get("environment") or {}
    if not isinstance(variables, Mapping):
        raise TypeError(f"'environment' in '{path}' must be a mapping")
    # Later entries may reference earlier ones, so expand against the live mapping.
    for key, value in variables.items():
        environ[str(key)] = _expand(value, environ)
        logger.debug("Set %s=%s", key, environ[str(key)])

    prepend = [_expand(entry, environ) for entry in normalize_string_list(data.get("path_prepend"), field_name="path_prepend")]
    if prepend:
        current = environ.get("PATH", "")
        environ["PATH"] = os.pathsep.join([*prepend, current] if current else prepend)


def initialize_environment(
    name: str = "env",
    *,
    state: InitState,
    environ: MutableMapping[str, str] | None = None,
    search_dir: Path | None = None,
) -> Path:
    """Load ``<name>.local.*`` or, failing that, ``<name>.*`` from ``search_dir``.

    Returns the loaded file. Does nothing when ``state`` already records a load.
    """

    if state.environment_source is not None:
        logger.debug("Environment already loaded from %s", state.environment_source)
        return state.environment_source

    env = os.environ if environ is None else environ
    directory = search_dir or DEFAULT_CONFIG_DIR
    path = find_config_file(directory, f"{name}.local") or find_config_file(directory, name)
    if path is None:
        raise EnvironmentScriptNotFound(name, directory, candidate_files(name, directory))

    logger.info("Loading environment from %s", path)
    apply_environment_file(path, env)
    state.mark_environment_loaded(path, env)
    return path


__all__ = ["DEFAULT_CONFIG_DIR", "apply_environment_file", "candidate_files", "initialize_environment"]
