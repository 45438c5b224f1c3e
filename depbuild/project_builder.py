"""Clone, patch, configure, build and install a single CMake project."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping
import json
import logging
import os
import shutil
import stat
import sys

from core.command_runner import CommandRunner

from .build_spec import BuildSpec, RemoteSource
from .errors import LocalSourceNotFound, PatchFileNotFound, SourcePathNotFound
from .git_manager import GitManager

logger = logging.getLogger(__name__)

DONE_MARKER = ".ci-build-done"


def _clear_readonly(function: Callable[[str], Any], path: str, error: Any) -> None:
    "Clear the read-only bit git puts on pack and index files, then retry"
    exc = error[1] if isinstance(error, tuple) else error
    if not isinstance(exc, PermissionError):
        raise exc
    os.chmod(path, stat.S_IWRITE)
    function(path)


def remove_tree(path: Path) -> None:
    """Recursively delete ``path``, including read-only files inside ``.git``."""

    if sys.version_info >= (3, 12):
        shutil.rmtree(path, onexc=_clear_readonly)
    else:
        shutil.rmtree(path, onerror=_clear_readonly)


@dataclass(slots=True)
class BuildPaths:
    source_dir: Path
    configure_dir: Path
    build_dir: Path
    install_prefix: Path

    @property
    def marker(self) -> Path:
        return self.build_dir / DONE_MARKER


@dataclass(slots=True)
class BuildResult:
    repo_name: str
    source_dir: Path
    build_dir: Path
    skipped: bool


class ProjectBuilder:
    """Builds one :class:`BuildSpec` into its shared install prefix.

    Remote sources are cloned into ``<workspace>/<version>-<name>`` and local
    sources are used in place. A successful build leaves a done-marker in its
    build directory; as long as the marker exists the build is skipped unless
    ``force_rebuild`` is set. Any failure purges the build directory but keeps
    the source tree for inspection.
    """

    def __init__(
        self,
        runner: CommandRunner,
        workspace: Path,
        *,
        patch_root: Path | None = None,
        dry_run: bool = False,
        environment: Mapping[str, str] | None = None,
    ) -> None:
        self._runner = runner
        self._workspace = Path(workspace).resolve()
        self._patch_root = Path(patch_root) if patch_root else self._workspace / "patches"
        self._dry_run = dry_run
        self._environment = environment
        self._git = GitManager(runner)

    @property
    def workspace(self) -> Path:
        return self._workspace

    def _absolute(self, path: Path) -> Path:
        path = path.expanduser()
        return path if path.is_absolute() else self._workspace / path

    def resolve_paths(self, spec: BuildSpec) -> BuildPaths:
        build_base = self._absolute(spec.build_base_dir)
        if isinstance(spec.source, RemoteSource):
            source_dir = self._workspace / spec.source_identifier
        else:
            try:
                source_dir = self._absolute(spec.source.path).resolve(strict=True)
            except FileNotFoundError as exc:
                raise SourcePathNotFound(self._absolute(spec.source.path)) from exc

        build_dir = build_base if spec.no_source_identifier_folder else build_base / spec.source_identifier
        configure_dir = source_dir / spec.source_subdir if spec.source_subdir else source_dir
        return BuildPaths(
            source_dir=source_dir,
            configure_dir=configure_dir,
            build_dir=build_dir,
            install_prefix=self._absolute(spec.install_prefix),
        )

    def resolve_patches(self, patch_files: List[str]) -> List[Path]:
        """Resolve patch paths before anything changes directory.

        Relative paths are looked up in the workspace first and then under
        ``patch_root``; the first existing file wins.
        """

        resolved: List[Path] = []
        for patch in patch_files:
            path = Path(patch).expanduser()
            if path.is_absolute():
                candidates = [path]
            else:
                candidates = list(dict.fromkeys([self._workspace / path, self._patch_root / path]))
            found = next((candidate for candidate in candidates if candidate.is_file()), None)
            if found is None:
                raise PatchFileNotFound(patch, candidates)
            resolved.append(found.resolve())
        return resolved

    def build(self, spec: BuildSpec) -> BuildResult:
        paths = self.resolve_paths(spec)
        if not spec.force_rebuild and paths.marker.exists():
            logger.info("%s (%s) is already built, skipping", spec.repo_name, spec.version_label)
            return BuildResult(spec.repo_name, paths.source_dir, paths.build_dir, skipped=True)

        try:
            if isinstance(spec.source, RemoteSource):
                self._acquire_remote(spec, spec.source, paths.source_dir)
            else:
                self._acquire_local(spec, paths.source_dir)
            self._configure_build_install(spec, paths)
            self._write_marker(spec, paths)
        except Exception as exc:
            self._purge(paths.build_dir)
            logger.error("Building %s (%s) failed: %s", spec.repo_name, spec.version_label, exc)
            exc.add_note(f"while building {spec.repo_name} ({spec.version_label})")
            raise

        logger.info("Installed %s (%s) into %s", spec.repo_name, spec.version_label, paths.install_prefix)
        return BuildResult(spec.repo_name, paths.source_dir, paths.build_dir, skipped=False)

    def _acquire_remote(self, spec: BuildSpec, source: RemoteSource, source_dir: Path) -> None:
        patches = self.resolve_patches(spec.patch_files)

        if spec.skip_clone_if_exist and source_dir.is_dir():
            logger.info("Reusing existing source tree %s", source_dir)
            return

        if source_dir.exists() and not self._dry_run:
            logger.debug("Removing stale source tree %s", source_dir)
            remove_tree(source_dir)

        self._git.clone(source, source_dir, cwd=self._workspace, environment=self._environment)
        for patch in patches:
            logger.info("Applying %s to %s", patch.name, spec.repo_name)
            self._git.apply_patch(source_dir, patch, environment=self._environment)

    def _acquire_local(self, spec: BuildSpec, source_dir: Path) -> None:
        if not source_dir.is_dir():
            raise LocalSourceNotFound(source_dir)
        if spec.patch_files:
            logger.warning("Ignoring patches for local source %s", spec.repo_name)

    def _configure_build_install(self, spec: BuildSpec, paths: BuildPaths) -> None:
        if not self._dry_run:
            paths.build_dir.mkdir(parents=True, exist_ok=True)

        configure = ["cmake", "-S", str(paths.configure_dir), "-B", str(paths.build_dir)]
        if spec.generator:
            configure.extend(["-G", spec.generator])
        configure.extend(
            [
                f"-DCMAKE_INSTALL_PREFIX={paths.install_prefix}",
                f"-DCMAKE_BUILD_TYPE={spec.build_type}",
            ]
        )
        configure.extend(spec.cmake_args)
        self._run(configure, note=f"Configure {spec.repo_name}")

        self._run(
            ["cmake", "--build", str(paths.build_dir), "--config", spec.build_type],
            note=f"Build {spec.repo_name}",
        )

        if spec.skip_install:
            return
        self._run(
            [
                "cmake",
                "--install",
                str(paths.build_dir),
                "--prefix",
                str(paths.install_prefix),
                "--config",
                spec.build_type,
            ],
            note=f"Install {spec.repo_name}",
        )

    def _run(self, command: List[str], *, note: str) -> None:
        self._runner.run(command, cwd=self._workspace, env=self._environment, note=note, stream=True)

    def _write_marker(self, spec: BuildSpec, paths: BuildPaths) -> None:
        if self._dry_run:
            return
        paths.marker.write_text(json.dumps(self.marker_metadata(spec, paths), indent=2) + "\n", encoding="utf-8")

    @staticmethod
    def marker_metadata(spec: BuildSpec, paths: BuildPaths) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "completed_at": datetime.now(timezone.utc).isoformat(timespec="seconds"),
            "repo_name": spec.repo_name,
        }
        if isinstance(spec.source, RemoteSource):
            data.update({"mode": "remote", "url": spec.source.url, "version": spec.source.version})
        else:
            data.update({"mode": "local", "path": str(paths.source_dir)})
        data.update(
            {
                "patches": list(spec.patch_files),
                "build_type": spec.build_type,
                "cmake_args": list(spec.cmake_args),
            }
        )
        return data

    def _purge(self, build_dir: Path) -> None:
        if self._dry_run or not build_dir.exists():
            return
        try:
            remove_tree(build_dir)
        except OSError as exc:
            logger.warning("Could not remove build directory %s: %s", build_dir, exc)


__all__ = ["BuildPaths", "BuildResult", "DONE_MARKER", "ProjectBuilder", "remove_tree"]
