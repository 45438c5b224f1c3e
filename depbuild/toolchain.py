"""Locate a Visual Studio C++ toolchain and enter its developer environment."""
from __future__ import annotations

from pathlib import Path
from typing import Dict, Mapping, MutableMapping
import logging
import os

from core.command_runner import CommandRunner

from .errors import ToolchainModuleNotFound, ToolchainNotFound
from .state import InitState

logger = logging.getLogger(__name__)

REQUIRED_COMPONENT = "Microsoft.VisualStudio.Component.VC.Tools.x86.x64"
DEV_SHELL_RELATIVE = Path("Common7") / "Tools" / "VsDevCmd.bat"


def vswhere_path(environ: Mapping[str, str]) -> Path:
    program_files = environ.get("ProgramFiles(x86)") or environ.get("ProgramFiles") or r"C:\Program Files (x86)"
    return Path(program_files) / "Microsoft Visual Studio" / "Installer" / "vswhere.exe"


def parse_set_output(text: str) -> Dict[str, str]:
    """Parse the ``KEY=VALUE`` lines printed by ``set``."""

    variables: Dict[str, str] = {}
    for line in text.splitlines():
        key, sep, value = line.partition("=")
        # Drive-cwd entries such as "=C:=C:\\" start with the separator.
        if not sep or not key:
            continue
        variables[key] = value
    return variables


class ToolchainLocator:
    def __init__(self, runner: CommandRunner, *, environ: MutableMapping[str, str] | None = None) -> None:
        self._runner = runner
        self._environ = os.environ if environ is None else environ

    def find_installation(self) -> Path:
        vswhere = vswhere_path(self._environ)
        if not vswhere.is_file():
            raise ToolchainNotFound(f"vswhere not found at {vswhere}")

        result = self._runner.run(
            [
                str(vswhere),
                "-latest",
                "-products",
                "*",
                "-requires",
                REQUIRED_COMPONENT,
                "-property",
                "installationPath",
            ],
            note="vswhere",
        )
        lines = [line.strip() for line in result.stdout.splitlines() if line.strip()]
        if not lines:
            raise ToolchainNotFound(f"No Visual Studio installation provides {REQUIRED_COMPONENT}")
        return Path(lines[0])

    def enter_dev_shell(self, installation: Path, extra_args: str = "") -> Dict[str, str]:
        module = installation / DEV_SHELL_RELATIVE
        if not module.is_file():
            raise ToolchainModuleNotFound(module)

        command = ["cmd.exe", "/c", str(module), "-no_logo", *extra_args.split(), "&&", "set"]
        result = self._runner.run(command, note="VsDevCmd")
        variables = parse_set_output(result.stdout)
        changed = 0
        for key, value in variables.items():
            if self._environ.get(key) != value:
                self._environ[key] = value
                changed += 1
        logger.debug("Developer shell updated %d environment variables", changed)
        return variables

    def locate(self, extra_args: str = "", force: bool = False, *, state: InitState) -> Path:
        if state.toolchain_path is not None and not force:
            logger.debug("Toolchain already initialized from %s", state.toolchain_path)
            return state.toolchain_path

        installation = self.find_installation()
        logger.info("Using Visual Studio installation at %s", installation)
        self.enter_dev_shell(installation, extra_args)
        state.mark_toolchain_located(installation, self._environ)
        return installation


def locate_toolchain(
    extra_args: str = "",
    force: bool = False,
    *,
    state: InitState,
    runner: CommandRunner,
    environ: MutableMapping[str, str] | None = None,
) -> Path:
    return ToolchainLocator(runner, environ=environ).locate(extra_args, force, state=state)


__all__ = [
    "DEV_SHELL_RELATIVE",
    "REQUIRED_COMPONENT",
    "ToolchainLocator",
    "locate_toolchain",
    "parse_set_output",
    "vswhere_path",
]
