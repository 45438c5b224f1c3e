"""Build orchestration for the pinned KDE Frameworks dependency set."""

from .build_spec import BuildSpec, LocalSource, RemoteSource
from .cli import main
from .modules import ModuleBuilder
from .project_builder import BuildResult, ProjectBuilder

__all__ = [
    "BuildResult",
    "BuildSpec",
    "LocalSource",
    "ModuleBuilder",
    "ProjectBuilder",
    "RemoteSource",
    "main",
]
