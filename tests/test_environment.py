from __future__ import annotations

from pathlib import Path
import os
import tempfile
import textwrap
import unittest

from depbuild.environment import initialize_environment
from depbuild.errors import EnvironmentScriptNotFound
from depbuild.state import ENV_LOADED_VARIABLE, InitState


class EnvironmentInitializerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.config_dir = Path(self.temp_dir.name)
        self.environ: dict[str, str] = {"PATH": "/usr/bin", "HOME_DIR": "/home/dev"}

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def test_local_file_takes_priority(self) -> None:
        (self.config_dir / "env.toml").write_text('[environment]\nSOURCE = "shared"\n')
        (self.config_dir / "env.local.toml").write_text('[environment]\nSOURCE = "local"\n')
        state = InitState()

        loaded = initialize_environment(state=state, environ=self.environ, search_dir=self.config_dir)

        self.assertEqual(loaded, self.config_dir / "env.local.toml")
        self.assertEqual(self.environ["SOURCE"], "local")
        self.assertEqual(state.environment_source, loaded)
        self.assertEqual(self.environ[ENV_LOADED_VARIABLE], str(loaded))

    def test_falls_back_to_shared_file(self) -> None:
        (self.config_dir / "env.toml").write_text('[environment]\nSOURCE = "shared"\n')

        loaded = initialize_environment(state=InitState(), environ=self.environ, search_dir=self.config_dir)

        self.assertEqual(loaded, self.config_dir / "env.toml")
        self.assertEqual(self.environ["SOURCE"], "shared")

    def test_missing_files_raise(self) -> None:
        state = InitState()

        with self.assertRaises(EnvironmentScriptNotFound) as ctx:
            initialize_environment("ci", state=state, environ=self.environ, search_dir=self.config_dir)

        self.assertEqual(ctx.exception.name, "ci")
        self.assertIn(self.config_dir / "ci.local.toml", ctx.exception.candidates)
        self.assertIsNone(state.environment_source)
        self.assertNotIn(ENV_LOADED_VARIABLE, self.environ)

    def test_second_call_is_a_no_op(self) -> None:
        env_file = self.config_dir / "env.toml"
        env_file.write_text('[environment]\nCOUNTER = "1"\n')
        state = InitState()
        initialize_environment(state=state, environ=self.environ, search_dir=self.config_dir)
        env_file.write_text('[environment]\nCOUNTER = "2"\n')

        initialize_environment(state=state, environ=self.environ, search_dir=self.config_dir)

        self.assertEqual(self.environ["COUNTER"], "1")

    def test_state_seeded_from_marker_skips_loading(self) -> None:
        (self.config_dir / "env.toml").write_text('[environment]\nSOURCE = "shared"\n')
        self.environ[ENV_LOADED_VARIABLE] = "/elsewhere/env.toml"
        state = InitState.from_environment(self.environ)

        loaded = initialize_environment(state=state, environ=self.environ, search_dir=self.config_dir)

        self.assertEqual(loaded, Path("/elsewhere/env.toml"))
        self.assertNotIn("SOURCE", self.environ)

    def test_placeholders_and_path_prepend(self) -> None:
        (self.config_dir / "env.yaml").write_text(
            textwrap.dedent(
                """
                environment:
                  QT_DIR: "{{env.HOME_DIR}}/Qt/6.7.2"
                  CMAKE_PREFIX_PATH: "{{ env.QT_DIR }}/msvc2019_64"
                  JOBS: 8
                path_prepend:
                  - "{{env.QT_DIR}}/bin"
                """
            )
        )

        initialize_environment(state=InitState(), environ=self.environ, search_dir=self.config_dir)

        self.assertEqual(self.environ["QT_DIR"], "/home/dev/Qt/6.7.2")
        self.assertEqual(self.environ["CMAKE_PREFIX_PATH"], "/home/dev/Qt/6.7.2/msvc2019_64")
        self.assertEqual(self.environ["JOBS"], "8")
        self.assertEqual(self.environ["PATH"], os.pathsep.join(["/home/dev/Qt/6.7.2/bin", "/usr/bin"]))

    def test_unknown_keys_are_rejected(self) -> None:
        (self.config_dir / "env.toml").write_text('QT_DIR = "C:/Qt"\n')

        with self.assertRaises(ValueError):
            initialize_environment(state=InitState(), environ=self.environ, search_dir=self.config_dir)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
