"""Command line interface for building the dependency set."""
from __future__ import annotations

from argparse import ArgumentParser, BooleanOptionalAction, Namespace
from pathlib import Path
from typing import Iterable, List
import logging
import os
import platform
import sys

import yaml

from core.command_runner import ExternalCommandError, RecordingCommandRunner, SubprocessCommandRunner

from .build_list import BuildList, load_build_list
from .driver import check_required_tools, run_build_list
from .environment import initialize_environment
from .errors import BuildListError, DepBuildError, EnvironmentScriptNotFound
from .modules import ModuleBuilder
from .project_builder import BuildResult, ProjectBuilder
from .state import InitState
from .toolchain import locate_toolchain

logger = logging.getLogger(__name__)


def _make_runner(dry_run: bool) -> SubprocessCommandRunner | RecordingCommandRunner:
    return RecordingCommandRunner() if dry_run else SubprocessCommandRunner()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _parse_arguments(argv: Iterable[str]) -> Namespace:
    parser = ArgumentParser(prog="depbuild", description="Build the pinned C++ dependency set with CMake")
    parser.add_argument(
        "framework_version",
        nargs="?",
        help="KDE Frameworks tag, branch or commit (defaults to the build list's framework_version)",
    )
    parser.add_argument("--config", type=Path, default=None, metavar="PATH", help="Build list file")
    parser.add_argument(
        "-C",
        "--workspace",
        type=Path,
        default=None,
        metavar="PATH",
        help="Directory that receives cloned sources, build trees and the install prefix (default: cwd)",
    )
    parser.add_argument("--env-name", default="env", help="Environment file stem to load (default: env)")
    parser.add_argument("--force-rebuild", action="store_true", help="Rebuild even when a done-marker exists")
    parser.add_argument("--dry-run", action="store_true", help="Print commands instead of running them")
    parser.add_argument(
        "--toolchain",
        action=BooleanOptionalAction,
        default=None,
        help="Enter the Visual Studio developer environment (default: only on Windows)",
    )
    parser.add_argument("--toolchain-args", default="", help="Extra arguments for VsDevCmd.bat, e.g. '-arch=x64'")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(list(argv))


def _should_locate_toolchain(args: Namespace) -> bool:
    if args.toolchain is not None:
        return args.toolchain
    return platform.system() == "Windows"


def _print_summary(results: List[BuildResult]) -> None:
    for result in results:
        status = "up to date" if result.skipped else "built"
        print(f"  {result.repo_name:<32} {status}")


def _prepare(args: Namespace, build_list: BuildList, state: InitState) -> None:
    config_dir = build_list.path.parent
    try:
        initialize_environment(args.env_name, state=state, search_dir=config_dir)
    except EnvironmentScriptNotFound as exc:
        logger.warning("%s; continuing with the current environment", exc)

    if _should_locate_toolchain(args):
        # vswhere and VsDevCmd leave the filesystem alone, so they also run during a dry run.
        locate_toolchain(args.toolchain_args, state=state, runner=SubprocessCommandRunner())

    if not args.dry_run:
        check_required_tools()


def main(argv: Iterable[str] | None = None) -> int:
    args = _parse_arguments(argv if argv is not None else sys.argv[1:])
    _configure_logging(args.verbose)
    workspace = (args.workspace or Path.cwd()).resolve()

    try:
        build_list = load_build_list(args.config.resolve() if args.config else None)
    except BuildListError as exc:
        print(f"Error: {exc}")
        return 2

    state = InitState.from_environment(os.environ)
    runner = _make_runner(args.dry_run)
    project_builder = ProjectBuilder(
        runner,
        workspace,
        patch_root=build_list.path.parent,
        dry_run=args.dry_run,
    )
    defaults = build_list.defaults
    module_builder = ModuleBuilder(
        project_builder,
        host_prefix=defaults.host_prefix,
        build_base_dir=defaults.build_dir,
        build_type=defaults.build_type,
        generator=defaults.generator,
    )

    try:
        _prepare(args, build_list, state)
        results = run_build_list(
            build_list,
            project_builder=project_builder,
            module_builder=module_builder,
            framework_version=args.framework_version,
            force_rebuild=args.force_rebuild,
        )
    except ExternalCommandError as exc:
        print(f"Error: {exc}")
        return exc.returncode or 1
    except (BuildListError, ValueError, TypeError, yaml.YAMLError) as exc:
        print(f"Error: {exc}")
        return 2
    except (DepBuildError, OSError) as exc:
        print(f"Error: {exc}")
        return 1
    finally:
        if isinstance(runner, RecordingCommandRunner):
            for line in runner.iter_formatted(workspace=workspace):
                print(line)

    prefix = defaults.install_prefix if defaults.install_prefix.is_absolute() else workspace / defaults.install_prefix
    print(f"Dependencies installed into {prefix}")
    _print_summary(results)
    return 0


__all__ = ["main"]
