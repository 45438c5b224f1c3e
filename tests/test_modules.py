from __future__ import annotations

from pathlib import Path
import tempfile
import unittest

from core.command_runner import RecordingCommandRunner
from depbuild.build_spec import RemoteSource
from depbuild.modules import ModuleBuilder, module_url
from depbuild.project_builder import ProjectBuilder


class ModuleBuilderTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.workspace = Path(self.temp_dir.name).resolve()
        self.runner = RecordingCommandRunner()
        self.project_builder = ProjectBuilder(self.runner, self.workspace, dry_run=True)

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def test_module_url(self) -> None:
        self.assertEqual(module_url("kconfig"), "https://invent.kde.org/frameworks/kconfig.git")
        self.assertEqual(module_url("kconfig", "https://mirror.example/kf/"), "https://mirror.example/kf/kconfig.git")

    def test_module_spec_is_remote(self) -> None:
        builder = ModuleBuilder(self.project_builder, build_type="RelWithDebInfo", generator="Ninja")

        spec = builder.module_spec(
            "kcoreaddons",
            "v6.5.0",
            cmake_args=["-DBUILD_TESTING=OFF"],
            install_prefix=Path("install"),
            force_rebuild=True,
        )

        self.assertEqual(spec.source, RemoteSource("https://invent.kde.org/frameworks/kcoreaddons.git", "v6.5.0"))
        self.assertEqual(spec.build_type, "RelWithDebInfo")
        self.assertEqual(spec.generator, "Ninja")
        self.assertEqual(spec.cmake_args, ["-DBUILD_TESTING=OFF"])
        self.assertTrue(spec.force_rebuild)

    def test_build_module_delegates_to_project_builder(self) -> None:
        builder = ModuleBuilder(self.project_builder)

        result = builder.build_module("ki18n", "v6.5.0", install_prefix=Path("install"))

        self.assertEqual(result.build_dir, self.workspace / "build" / "v6.5.0-ki18n")
        self.assertEqual(
            self.runner.commands[0].command[-2:],
            ["https://invent.kde.org/frameworks/ki18n.git", str(self.workspace / "v6.5.0-ki18n")],
        )


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
