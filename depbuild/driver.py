"""Run a build list in order, one dependency at a time."""
from __future__ import annotations

from typing import Callable, Iterable, List, Mapping
import logging
import shutil

from .build_list import BuildList
from .ci import log_group
from .errors import RequiredToolNotFound
from .modules import ModuleBuilder
from .project_builder import BuildResult, ProjectBuilder

logger = logging.getLogger(__name__)

REQUIRED_TOOLS = ("git", "cmake")


def check_required_tools(
    tools: Iterable[str] = REQUIRED_TOOLS,
    *,
    which: Callable[[str], str | None] | None = None,
) -> None:
    lookup = which or shutil.which
    missing = [tool for tool in tools if lookup(tool) is None]
    if missing:
        raise RequiredToolNotFound(missing)


def run_build_list(
    build_list: BuildList,
    *,
    project_builder: ProjectBuilder,
    module_builder: ModuleBuilder,
    framework_version: str | None = None,
    force_rebuild: bool = False,
    environ: Mapping[str, str] | None = None,
) -> List[BuildResult]:
    """Build every entry of ``build_list`` in file order.

    The first failure propagates and stops the run; entries after it are not
    attempted.
    """

    defaults = build_list.defaults
    version = framework_version or defaults.framework_version
    results: List[BuildResult] = []
    total = len(build_list.entries)

    for position, entry in enumerate(build_list.entries, start=1):
        label = version if entry.module else (entry.version or "local")
        with log_group(f"[{position}/{total}] {entry.name} ({label})", environ=environ):
            if entry.module:
                result = module_builder.build_module(
                    entry.name,
                    version,
                    entry.patches,
                    [*defaults.cmake_args, *entry.cmake_args],
                    install_prefix=defaults.install_prefix,
                    force_rebuild=force_rebuild,
                )
            else:
                result = project_builder.build(entry.to_spec(defaults, force_rebuild=force_rebuild))
        results.append(result)

    built = sum(1 for result in results if not result.skipped)
    logger.info("Finished %d builds (%d built, %d up to date)", len(results), built, len(results) - built)
    return results


__all__ = ["REQUIRED_TOOLS", "check_required_tools", "run_build_list"]
