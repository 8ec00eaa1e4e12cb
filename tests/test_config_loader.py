from __future__ import annotations

from pathlib import Path
import os
import tempfile
import textwrap
import unittest
from unittest.mock import patch

from gobu.config_loader import (
    ConfigError,
    ProjectConfig,
    find_config_file,
    load_config_file,
    load_project_config,
    normalize_string_list,
)


class ConfigLoaderTests(unittest.TestCase):
    def setUp(self) -> None:
        env_patcher = patch.dict(os.environ, {})
        env_patcher.start()
        self.addCleanup(env_patcher.stop)
        os.environ.pop("GOBU_CONFIG", None)
        os.environ.pop("GOBU_EXTRA_DIST", None)
        self.temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(self.temp_dir.cleanup)
        self.workspace = Path(self.temp_dir.name)

    def _write(self, name: str, content: str) -> Path:
        path = self.workspace / name
        path.write_text(textwrap.dedent(content), encoding="utf-8")
        return path

    def test_load_toml_yaml_and_json(self) -> None:
        toml_path = self._write(
            "one.toml",
            """
            extra_dist = ["README*"]

            [traits.ci]
            expands = ["release"]
            """,
        )
        yaml_path = self._write(
            "two.yaml",
            """
            extra_dist: [README*]
            traits:
              ci:
                expands: [release]
            """,
        )
        json_path = self._write("three.json", '{"extra_dist": ["README*"], "traits": {"ci": {"expands": ["release"]}}}')

        expected = {"extra_dist": ["README*"], "traits": {"ci": {"expands": ["release"]}}}
        for path in (toml_path, yaml_path, json_path):
            with self.subTest(path=path.name):
                self.assertEqual(dict(load_config_file(path)), expected)

    def test_empty_yaml_document_is_empty_mapping(self) -> None:
        path = self._write("empty.yml", "")
        self.assertEqual(load_config_file(path), {})

    def test_unsupported_suffix_raises(self) -> None:
        path = self._write("gobu.ini", "[x]")
        with self.assertRaises(ConfigError) as ctx:
            load_config_file(path)
        self.assertIn("Unsupported configuration file extension: .ini", str(ctx.exception))

    def test_non_mapping_root_raises(self) -> None:
        path = self._write("list.yaml", "- a\n- b\n")
        with self.assertRaises(ConfigError):
            load_config_file(path)

    def test_parse_errors_become_config_errors(self) -> None:
        path = self._write("broken.toml", "extra_dist = [")
        with self.assertRaises(ConfigError) as ctx:
            load_config_file(path)
        self.assertIn("Cannot parse configuration file", str(ctx.exception))

    def test_find_config_file_in_workdir(self) -> None:
        self.assertIsNone(find_config_file(self.workspace))
        path = self._write("gobu.yaml", "extra_dist: LICENSE\n")
        self.assertEqual(find_config_file(self.workspace), path)

    def test_find_config_file_rejects_multiple_formats(self) -> None:
        self._write("gobu.toml", "")
        self._write("gobu.json", "{}")
        with self.assertRaises(ConfigError) as ctx:
            find_config_file(self.workspace)
        self.assertIn("gobu.toml, gobu.json", str(ctx.exception))

    def test_explicit_path_wins_over_environment(self) -> None:
        explicit = self._write("custom.toml", "")
        env_path = self._write("env.toml", "")
        os.environ["GOBU_CONFIG"] = str(env_path)

        self.assertEqual(find_config_file(self.workspace, "custom.toml"), explicit)
        self.assertEqual(find_config_file(self.workspace), env_path)

    def test_missing_explicit_path_raises(self) -> None:
        with self.assertRaises(ConfigError):
            find_config_file(self.workspace, "nope.toml")

    def test_load_project_config_without_file(self) -> None:
        project = load_project_config(self.workspace)
        self.assertIsNone(project.source)
        self.assertEqual(project.traits, {})
        self.assertIsNone(project.extra_dist)

    def test_load_project_config_normalizes_traits(self) -> None:
        path = self._write(
            "gobu.toml",
            """
            extra_dist = "README* docs/*.md"

            [traits]
            quick = ["nocgo", "shrink"]

            [traits.ci]
            help = "CI build"
            expands = "ldflags=-s -w"
            """,
        )
        project = load_project_config(self.workspace)

        self.assertEqual(project.source, path)
        self.assertEqual(project.extra_dist, ["README*", "docs/*.md"])
        self.assertEqual(
            project.traits,
            {
                "quick": {"help": None, "expands": ["nocgo", "shrink"]},
                "ci": {"help": "CI build", "expands": ["ldflags=-s -w"]},
            },
        )


class ProjectConfigTests(unittest.TestCase):
    def test_unknown_keys_are_rejected(self) -> None:
        with self.assertRaises(ConfigError):
            ProjectConfig.from_mapping({"presets": {}})
        with self.assertRaises(ConfigError):
            ProjectConfig.from_mapping({"traits": {"ci": {"expands": ["release"], "env": {}}}})

    def test_trait_definitions_are_validated(self) -> None:
        with self.assertRaises(ConfigError):
            ProjectConfig.from_mapping({"traits": {"tags=": ["release"]}})
        with self.assertRaises(ConfigError):
            ProjectConfig.from_mapping({"traits": {"ci": []}})
        with self.assertRaises(ConfigError):
            ProjectConfig.from_mapping({"traits": ["ci"]})
        with self.assertRaises(ConfigError):
            ProjectConfig.from_mapping({"traits": {"ci": [1, 2]}})

    def test_extra_dist_precedence(self) -> None:
        configured = ProjectConfig(extra_dist=["CHANGELOG.md"])
        unconfigured = ProjectConfig()

        self.assertEqual(unconfigured.resolve_extra_dist({}), ["README*", "LICENSE"])
        self.assertEqual(configured.resolve_extra_dist({}), ["CHANGELOG.md"])
        self.assertEqual(
            configured.resolve_extra_dist({"GOBU_EXTRA_DIST": "NOTICE  docs/*.txt"}),
            ["NOTICE", "docs/*.txt"],
        )

    def test_extra_dist_reads_process_environment_by_default(self) -> None:
        with patch.dict(os.environ, {"GOBU_EXTRA_DIST": "COPYING"}):
            self.assertEqual(ProjectConfig().resolve_extra_dist(), ["COPYING"])


class NormalizeStringListTests(unittest.TestCase):
    def test_normalize_string_list(self) -> None:
        self.assertEqual(normalize_string_list(None), [])
        self.assertEqual(normalize_string_list(" a  b "), ["a", "b"])
        self.assertEqual(normalize_string_list(" ldflags=-s -w ", split=False), ["ldflags=-s -w"])
        self.assertEqual(normalize_string_list("  ", split=False), [])
        self.assertEqual(normalize_string_list([" a ", "", "b"]), ["a", "b"])
        with self.assertRaises(ConfigError):
            normalize_string_list(3, field_name="extra_dist")


if __name__ == "__main__":
    unittest.main()
