"""Exception hierarchy for depbuild."""
from __future__ import annotations

from pathlib import Path

from core.command_runner import ExternalCommandError


class DepBuildError(Exception):
    """Base class for errors raised by depbuild itself."""


class InvalidBuildSpec(DepBuildError, ValueError):
    pass


class BuildListError(DepBuildError, ValueError):
    pass


class EnvironmentScriptNotFound(DepBuildError, FileNotFoundError):
    def __init__(self, name: str, search_dir: Path, candidates: list[Path]):
        self.name = name
        self.search_dir = search_dir
        self.candidates = candidates
        tried = ", ".join(path.name for path in candidates)
        super().__init__(f"No environment file for '{name}' in {search_dir} (tried: {tried})")


class ToolchainNotFound(DepBuildError):
    pass


class ToolchainModuleNotFound(DepBuildError, FileNotFoundError):
    def __init__(self, module_path: Path):
        self.module_path = module_path
        super().__init__(f"Toolchain shell integration not found at {module_path}")


class RequiredToolNotFound(DepBuildError):
    def __init__(self, tools: list[str]):
        self.tools = tools
        super().__init__(f"Required executables not found on PATH: {', '.join(tools)}")


class SourcePathNotFound(DepBuildError, FileNotFoundError):
    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"Local source path does not exist: {path}")


class LocalSourceNotFound(DepBuildError, NotADirectoryError):
    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"Local source is not a directory: {path}")


class PatchFileNotFound(DepBuildError, FileNotFoundError):
    def __init__(self, patch: str, candidates: list[Path]):
        self.patch = patch
        self.candidates = candidates
        tried = ", ".join(str(path) for path in candidates)
        super().__init__(f"Patch file '{patch}' not found (tried: {tried})")


__all__ = [
    "BuildListError",
    "DepBuildError",
    "EnvironmentScriptNotFound",
    "ExternalCommandError",
    "InvalidBuildSpec",
    "LocalSourceNotFound",
    "PatchFileNotFound",
    "RequiredToolNotFound",
    "SourcePathNotFound",
    "ToolchainModuleNotFound",
    "ToolchainNotFound",
]
