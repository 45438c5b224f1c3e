"""Build KDE Frameworks modules by name."""
from __future__ import annotations

from pathlib import Path
from typing import Iterable

from .build_spec import BuildSpec, RemoteSource
from .project_builder import BuildResult, ProjectBuilder

KDE_FRAMEWORKS_HOST = "https://invent.kde.org/frameworks"


def module_url(repo_name: str, host_prefix: str = KDE_FRAMEWORKS_HOST) -> str:
    return f"{host_prefix.rstrip('/')}/{repo_name}.git"


class ModuleBuilder:
    def __init__(
        self,
        project_builder: ProjectBuilder,
        *,
        host_prefix: str = KDE_FRAMEWORKS_HOST,
        build_base_dir: Path = Path("build"),
        build_type: str = "Release",
        generator: str | None = None,
    ) -> None:
        self._project_builder = project_builder
        self._host_prefix = host_prefix
        self._build_base_dir = build_base_dir
        self._build_type = build_type
        self._generator = generator

    def module_spec(
        self,
        repo_name: str,
        framework_version: str,
        patch_files: Iterable[str] = (),
        cmake_args: Iterable[str] = (),
        *,
        install_prefix: Path,
        force_rebuild: bool = False,
    ) -> BuildSpec:
        return BuildSpec(
            repo_name=repo_name,
            source=RemoteSource(url=module_url(repo_name, self._host_prefix), version=framework_version),
            install_prefix=install_prefix,
            build_base_dir=self._build_base_dir,
            patch_files=list(patch_files),
            cmake_args=list(cmake_args),
            build_type=self._build_type,
            generator=self._generator,
            force_rebuild=force_rebuild,
        )

    def build_module(
        self,
        repo_name: str,
        framework_version: str,
        patch_files: Iterable[str] = (),
        cmake_args: Iterable[str] = (),
        *,
        install_prefix: Path,
        force_rebuild: bool = False,
    ) -> BuildResult:
        spec = self.module_spec(
            repo_name,
            framework_version,
            patch_files,
            cmake_args,
            install_prefix=install_prefix,
            force_rebuild=force_rebuild,
        )
        return self._project_builder.build(spec)


__all__ = ["KDE_FRAMEWORKS_HOST", "ModuleBuilder", "module_url"]
