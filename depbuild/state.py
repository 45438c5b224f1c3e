"""Initialization state shared by the environment and toolchain steps."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, MutableMapping

ENV_LOADED_VARIABLE = "DEPBUILD_ENV_LOADED"
TOOLCHAIN_PATH_VARIABLE = "DEPBUILD_TOOLCHAIN_PATH"


@dataclass(slots=True)
class InitState:
    """Tracks which one-time setup steps already ran.

    A fresh instance means nothing ran yet. ``from_environment`` seeds it from
    the marker variables, so a nested invocation inherits its parent's setup.
    """

    environment_source: Path | None = None
    toolchain_path: Path | None = None

    @classmethod
    def from_environment(cls, environ: Mapping[str, str]) -> "InitState":
        env_source = environ.get(ENV_LOADED_VARIABLE)
        toolchain = environ.get(TOOLCHAIN_PATH_VARIABLE)
        return cls(
            environment_source=Path(env_source) if env_source else None,
            toolchain_path=Path(toolchain) if toolchain else None,
        )

    def mark_environment_loaded(self, path: Path, environ: MutableMapping[str, str]) -> None:
        self.environment_source = path
        environ[ENV_LOADED_VARIABLE] = str(path)

    def mark_toolchain_located(self, path: Path, environ: MutableMapping[str, str]) -> None:
        self.toolchain_path = path
        environ[TOOLCHAIN_PATH_VARIABLE] = str(path)


__all__ = ["ENV_LOADED_VARIABLE", "InitState", "TOOLCHAIN_PATH_VARIABLE"]
