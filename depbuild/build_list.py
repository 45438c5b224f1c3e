"""Parse the ordered list of dependencies to build."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Mapping

import yaml

from core.config_loader import load_config_file, normalize_string_list

from .build_spec import BuildSpec
from .errors import BuildListError, InvalidBuildSpec
from .modules import KDE_FRAMEWORKS_HOST

DEFAULT_BUILD_LIST = Path(__file__).resolve().parent / "config" / "builds.toml"

_DEFAULT_KEYS = {
    "framework_version",
    "install_prefix",
    "build_dir",
    "build_type",
    "generator",
    "cmake_args",
    "host_prefix",
}
_MODULE_KEYS = {"module", "patches", "cmake_args"}
_PROJECT_KEYS = {
    "name",
    "url",
    "version",
    "path",
    "patches",
    "cmake_args",
    "source_subdir",
    "skip_install",
    "no_source_identifier_folder",
    "skip_clone_if_exist",
}
_FLAG_KEYS = ("skip_install", "no_source_identifier_folder", "skip_clone_if_exist")


@dataclass(slots=True)
class BuildDefaults:
    framework_version: str
    install_prefix: Path = Path("install")
    build_dir: Path = Path("build")
    build_type: str = "Release"
    generator: str | None = None
    cmake_args: List[str] = field(default_factory=list)
    host_prefix: str = KDE_FRAMEWORKS_HOST

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "BuildDefaults":
        _reject_unknown("defaults", data, _DEFAULT_KEYS)
        version = data.get("framework_version")
        if not isinstance(version, str) or not version.strip():
            raise BuildListError("defaults.framework_version must be a non-empty string")
        generator = data.get("generator")
        return cls(
            framework_version=version.strip(),
            install_prefix=Path(str(data.get("install_prefix", "install"))),
            build_dir=Path(str(data.get("build_dir", "build"))),
            build_type=str(data.get("build_type", "Release")),
            generator=str(generator) if generator else None,
            cmake_args=_string_list(data.get("cmake_args"), "defaults.cmake_args"),
            host_prefix=str(data.get("host_prefix", KDE_FRAMEWORKS_HOST)),
        )


@dataclass(slots=True)
class BuildEntry:
    """One ``[[build]]`` entry: a framework module or a standalone project."""

    name: str
    module: bool = False
    url: str | None = None
    version: str | None = None
    path: str | None = None
    patches: List[str] = field(default_factory=list)
    cmake_args: List[str] = field(default_factory=list)
    source_subdir: str | None = None
    skip_install: bool = False
    no_source_identifier_folder: bool = False
    skip_clone_if_exist: bool = False

    @classmethod
    def from_mapping(cls, index: int, data: Mapping[str, Any]) -> "BuildEntry":
        label = f"build[{index}]"
        if not isinstance(data, Mapping):
            raise BuildListError(f"{label} must be a table")

        patches = _string_list(data.get("patches"), f"{label}.patches")
        cmake_args = _string_list(data.get("cmake_args"), f"{label}.cmake_args")

        if "module" in data:
            _reject_unknown(label, data, _MODULE_KEYS)
            name = data["module"]
            if not isinstance(name, str) or not name.strip():
                raise BuildListError(f"{label}.module must be a non-empty string")
            return cls(name=name.strip(), module=True, patches=patches, cmake_args=cmake_args)

        _reject_unknown(label, data, _PROJECT_KEYS)
        name = data.get("name")
        if not isinstance(name, str) or not name.strip():
            raise BuildListError(f"{label} needs either 'module' or 'name'")

        flags = {}
        for key in _FLAG_KEYS:
            value = data.get(key, False)
            if not isinstance(value, bool):
                raise BuildListError(f"{label}.{key} must be a boolean")
            flags[key] = value

        subdir = data.get("source_subdir")
        return cls(
            name=name.strip(),
            url=_optional_str(data, "url"),
            version=_optional_str(data, "version"),
            path=_optional_str(data, "path"),
            patches=patches,
            cmake_args=cmake_args,
            source_subdir=str(subdir) if subdir else None,
            **flags,
        )

    def to_spec(self, defaults: BuildDefaults, *, force_rebuild: bool = False) -> BuildSpec:
        """Turn a project entry into a :class:`BuildSpec`; module entries go through the module builder."""

        if self.module:
            raise ValueError(f"'{self.name}' is a framework module")
        try:
            return BuildSpec.from_options(
                self.name,
                repo_url=self.url,
                version=self.version,
                source_path=self.path,
                install_prefix=defaults.install_prefix,
                patch_files=self.patches,
                cmake_args=[*defaults.cmake_args, *self.cmake_args],
                build_base_dir=defaults.build_dir,
                build_type=defaults.build_type,
                generator=defaults.generator,
                source_subdir=self.source_subdir,
                force_rebuild=force_rebuild,
                skip_install=self.skip_install,
                no_source_identifier_folder=self.no_source_identifier_folder,
                skip_clone_if_exist=self.skip_clone_if_exist,
            )
        except InvalidBuildSpec as exc:
            raise BuildListError(str(exc)) from exc


@dataclass(slots=True)
class BuildList:
    path: Path
    defaults: BuildDefaults
    entries: List[BuildEntry]

    def names(self) -> List[str]:
        return [entry.name for entry in self.entries]


def _reject_unknown(label: str, data: Mapping[str, Any], allowed: set[str]) -> None:
    unknown = {str(key) for key in data.keys()} - allowed
    if unknown:
        raise BuildListError(f"{label} contains unknown keys: {', '.join(sorted(unknown))}")


def _optional_str(data: Mapping[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _string_list(value: Any, field_name: str) -> List[str]:
    try:
        return normalize_string_list(value, field_name=field_name)
    except TypeError as exc:
        raise BuildListError(str(exc)) from exc


def load_build_list(path: Path | None = None) -> BuildList:
    source = path or DEFAULT_BUILD_LIST
    try:
        data = load_config_file(source)
    except FileNotFoundError as exc:
        raise BuildListError(f"Build list not found: {source}") from exc
    except (ValueError, TypeError, yaml.YAMLError) as exc:
        raise BuildListError(f"Could not read build list {source}: {exc}") from exc

    _reject_unknown(str(source.name), data, {"defaults", "build"})
    defaults_section = data.get("defaults")
    if not isinstance(defaults_section, Mapping):
        raise BuildListError(f"{source.name} must define a [defaults] table")
    entries_section = data.get("build") or []
    if not isinstance(entries_section, list):
        raise BuildListError(f"{source.name}: 'build' must be an array of tables")

    entries = [BuildEntry.from_mapping(index, item) for index, item in enumerate(entries_section)]
    seen: set[str] = set()
    for entry in entries:
        if entry.name in seen:
            raise BuildListError(f"Duplicate build entry '{entry.name}'")
        seen.add(entry.name)

    return BuildList(path=source, defaults=BuildDefaults.from_mapping(defaults_section), entries=entries)


__all__ = ["BuildDefaults", "BuildEntry", "BuildList", "DEFAULT_BUILD_LIST", "load_build_list"]
