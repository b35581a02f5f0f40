from __future__ import annotations

from pathlib import Path
from unittest import mock
import os
import tempfile
import textwrap
import unittest

from buildgen.config_loader import (
    CONFIG_ENV_VAR,
    WorkspaceConfig,
    find_config_file,
    load_config_file,
    normalize_string_list,
)
from buildgen.errors import ConfigError
from buildgen.template import TemplateError, TemplateResolver


class WorkspaceConfigTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)
        env = mock.patch.dict(os.environ)
        env.start()
        self.addCleanup(env.stop)
        os.environ.pop(CONFIG_ENV_VAR, None)

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def _write(self, name: str, text: str) -> Path:
        path = self.root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(text), encoding="utf-8")
        return path

    def test_defaults_without_a_file(self) -> None:
        config = WorkspaceConfig.from_directory(self.root)
        self.assertIsNone(config.source)
        self.assertEqual(config.global_config.log_level, "warning")
        self.assertEqual(config.global_config.output, "Makefile")
        self.assertEqual(config.paths.object_dir, ".gen-obj")
        self.assertEqual(config.toolchain.cc, "cc")
        self.assertEqual(list(config.generated_dirs()), [".gen-obj", ".gen-files", ".gen-pkg"])

    def test_toml_sections(self) -> None:
        path = self._write(
            "buildgen.toml",
            """
            [global]
            log_level = "DEBUG"
            output = "build/Makefile"

            [paths]
            object_dir = "out/obj/"

            [toolchain]
            cc = "clang"
            cflags = "-O2"
            ldflags = ["-pthread", "-lm"]
            """,
        )
        config = WorkspaceConfig.from_directory(self.root)
        self.assertEqual(config.source, path)
        self.assertEqual(config.global_config.log_level, "debug")
        self.assertEqual(config.global_config.output, "build/Makefile")
        self.assertEqual(config.paths.object_dir, "out/obj")
        self.assertEqual(config.paths.genfile_dir, ".gen-files")
        self.assertEqual(config.toolchain.cc, "clang")
        self.assertEqual(config.toolchain.cflags, ["-O2"])
        self.assertEqual(config.toolchain.ldflags, ["-pthread", "-lm"])

    def test_yaml_and_json(self) -> None:
        self._write("buildgen.yaml", "toolchain:\n  prefix: /opt/tools\n")
        self.assertEqual(WorkspaceConfig.from_directory(self.root).toolchain.prefix, "/opt/tools")

        other = Path(self.temp_dir.name) / "json"
        other.mkdir()
        (other / "buildgen.json").write_text('{"global": {"log_file": "gen.log"}}', encoding="utf-8")
        self.assertEqual(WorkspaceConfig.from_directory(other).global_config.log_file, "gen.log")

    def test_multiple_formats_are_rejected(self) -> None:
        self._write("buildgen.toml", "")
        self._write("buildgen.yml", "")
        with self.assertRaises(ConfigError) as ctx:
            find_config_file(self.root, "buildgen")
        self.assertIn("Only one format", str(ctx.exception))

    def test_invalid_values(self) -> None:
        self._write("buildgen.toml", '[global]\nlog_level = "loud"\n')
        with self.assertRaises(ConfigError):
            WorkspaceConfig.from_directory(self.root)

        self._write("buildgen.toml", '[paths]\nobject_dir = "/abs/obj"\n')
        with self.assertRaises(ConfigError):
            WorkspaceConfig.from_directory(self.root)

        self._write("buildgen.toml", 'toolchain = "gcc"\n')
        with self.assertRaises(ConfigError):
            WorkspaceConfig.from_directory(self.root)

    def test_environment_selects_config(self) -> None:
        self._write("conf/alt.yaml", "global:\n  output: Alt.mk\n")
        os.environ[CONFIG_ENV_VAR] = "conf/alt.yaml"
        config = WorkspaceConfig.from_directory(self.root)
        self.assertEqual(config.global_config.output, "Alt.mk")

    def test_missing_explicit_config(self) -> None:
        with self.assertRaises(ConfigError):
            WorkspaceConfig.from_directory(self.root, config_file=Path("nope.toml"))

    def test_decode_errors_are_config_errors(self) -> None:
        broken = self._write("broken.toml", "[global\n")
        with self.assertRaises(ConfigError):
            load_config_file(broken)
        listing = self._write("list.yaml", "- a\n- b\n")
        with self.assertRaises(ConfigError):
            load_config_file(listing)
        self.assertEqual(load_config_file(self._write("empty.yaml", "")), {})
        with self.assertRaises(ConfigError):
            load_config_file(self._write("config.ini", "[a]\n"))


class HelperTests(unittest.TestCase):
    def test_normalize_string_list(self) -> None:
        self.assertEqual(normalize_string_list(None), [])
        self.assertEqual(normalize_string_list(" a "), ["a"])
        self.assertEqual(normalize_string_list(["a", " ", "b"]), ["a", "b"])
        with self.assertRaises(TypeError):
            normalize_string_list([1, 2], field_name="sources")
        with self.assertRaises(TypeError):
            normalize_string_list({"a": 1})

    def test_template_resolver(self) -> None:
        resolver = TemplateResolver({"paths": {"genfile_dir": ".gen-files"}, "package": {"path": "lib"}})
        self.assertEqual(
            resolver.resolve(["-I{{ paths.genfile_dir }}/{{package.path}}", 3]),
            ["-I.gen-files/lib", 3],
        )
        self.assertEqual(resolver.resolve({"KEY": "{{package.path}}"}), {"KEY": "lib"})
        with self.assertRaises(TemplateError):
            resolver.resolve("{{package.missing}}")
        with self.assertRaises(TemplateError):
            resolver.resolve("{{paths}}")


if __name__ == "__main__":
    unittest.main()
