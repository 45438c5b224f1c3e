"""Git operations used to fetch and patch dependency sources."""
from __future__ import annotations

from pathlib import Path
from typing import Mapping, Sequence

from core.command_runner import CommandResult, CommandRunner

from .build_spec import RemoteSource


class GitManager:
    def __init__(self, runner: CommandRunner) -> None:
        self._runner = runner

    def clone(
        self,
        source: RemoteSource,
        destination: Path,
        *,
        cwd: Path | None = None,
        environment: Mapping[str, str] | None = None,
    ) -> None:
        """Shallow-clone ``source`` into ``destination``.

        Commit hashes clone the default branch and then check the commit out.
        Anything else is passed to ``--branch`` as a branch or tag name.
        """

        if not source.is_commit:
            self._run_command(
                ["git", "clone", "--depth", "1", "--branch", source.version, source.url, str(destination)],
                cwd=cwd,
                environment=environment,
                note=f"git clone {source.url} ({source.version})",
            )
            return

        self._run_command(
            ["git", "clone", "--depth", "1", source.url, str(destination)],
            cwd=cwd,
            environment=environment,
            note=f"git clone {source.url}",
        )
        # Servers only serve full object names to a shallow fetch.
        if len(source.version) == 40:
            fetch = ["git", "fetch", "--depth", "1", "origin", source.version]
        else:
            fetch = ["git", "fetch", "--unshallow", "origin"]
        self._run_command(fetch, cwd=destination, environment=environment, note=f"git fetch {source.version}")
        self._run_command(
            ["git", "checkout", source.version],
            cwd=destination,
            environment=environment,
            note=f"git checkout {source.version}",
        )

    def apply_patch(
        self,
        repo_path: Path,
        patch: Path,
        *,
        environment: Mapping[str, str] | None = None,
    ) -> None:
        self._run_command(
            ["git", "apply", "--ignore-whitespace", str(patch)],
            cwd=repo_path,
            environment=environment,
            note=f"git apply {patch.name}",
        )

    def _run_command(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None,
        environment: Mapping[str, str] | None = None,
        note: str | None = None,
    ) -> CommandResult:
        return self._runner.run(list(command), cwd=cwd, env=environment, note=note, stream=True)


__all__ = ["GitManager"]
