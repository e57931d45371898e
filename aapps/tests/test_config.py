import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from aapps import config
from aapps.errors import ConfigError
from aapps.models import AppConfig


CONFIG_YAML = """
app_name: Todo List
app_version: "1.2.0"
app_release_date: "2024-03-01"
changelog_path: changelog.yaml
users:
  - username: alice
    password_hash: "$2a$10$abcdefghijklmnopqrstuv"
    share_group: household
  - username: bob
    password_hash: "$2a$10$abcdefghijklmnopqrstuv"
    share_group: household
  - username: carol
    password_hash: "$2a$10$abcdefghijklmnopqrstuv"
"""

CHANGELOG_YAML = """
- version: "1.2.0"
  date: "2024-03-01"
  changes:
    - Shared lists for households
- version: "1.1.0"
  date: "2024-01-15"
  changes: []
"""


class ConfigLoadingTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _write(self, name: str, content: str) -> Path:
        path = self.tmp / name
        path.write_text(content, encoding="utf-8")
        return path

    def test_load_app_config(self) -> None:
        app_config = config.load_app_config(self._write("config.yaml", CONFIG_YAML))

        self.assertEqual(app_config.app_version, "1.2.0")
        self.assertEqual([u.username for u in app_config.users], ["alice", "bob", "carol"])
        self.assertEqual(app_config.users[0].share_group, "household")
        self.assertEqual(app_config.users[2].share_group, "")

    def test_roster_is_immutable(self) -> None:
        roster = config.load_roster(config.load_app_config(self._write("config.yaml", CONFIG_YAML)))
        self.assertIsInstance(roster, tuple)
        with self.assertRaises(Exception):
            roster[0].share_group = "other"

    def test_missing_file_raises(self) -> None:
        with self.assertRaisesRegex(ConfigError, "failed to read config"):
            config.load_app_config(self.tmp / "missing.yaml")

    def test_malformed_yaml_raises(self) -> None:
        with self.assertRaisesRegex(ConfigError, "failed to parse config"):
            config.load_app_config(self._write("config.yaml", "users: [unclosed"))

    def test_non_mapping_raises(self) -> None:
        with self.assertRaises(ConfigError):
            config.load_app_config(self._write("config.yaml", "- just\n- a list\n"))

    def test_empty_file_is_an_empty_config(self) -> None:
        self.assertEqual(config.load_app_config(self._write("config.yaml", "")), AppConfig())

    def test_lenient_loader_falls_back(self) -> None:
        with self.assertLogs("aapps.config", level="WARNING"):
            app_config = config.load_app_config_or_default(self.tmp / "missing.yaml")
        self.assertEqual(app_config.users, [])
        self.assertEqual(app_config.changelog_path, config.DEFAULT_CHANGELOG_PATH)

    def test_load_changelog(self) -> None:
        entries = config.load_changelog(self._write("changelog.yaml", CHANGELOG_YAML))
        self.assertEqual([e.version for e in entries], ["1.2.0", "1.1.0"])
        self.assertEqual(entries[0].changes, ["Shared lists for households"])

    def test_changelog_must_be_a_list(self) -> None:
        with self.assertRaises(ConfigError):
            config.load_changelog(self._write("changelog.yaml", "version: 1\n"))


class SettingsPrecedenceTests(unittest.TestCase):
    def test_env_secret_wins(self) -> None:
        with patch.object(config, "JWT_SECRET", "from-env"):
            self.assertEqual(config.resolve_jwt_secret(AppConfig(jwt_secret="from-yaml")), "from-env")

    def test_yaml_secret_then_dev_default(self) -> None:
        with patch.object(config, "JWT_SECRET", ""):
            self.assertEqual(config.resolve_jwt_secret(AppConfig(jwt_secret="from-yaml")), "from-yaml")
            with self.assertLogs("aapps.config", level="WARNING"):
                self.assertEqual(config.resolve_jwt_secret(AppConfig()), config.DEV_JWT_SECRET)

    def test_port_precedence(self) -> None:
        with patch.object(config, "PORT", 0):
            self.assertEqual(config.resolve_port(AppConfig(), 3001), 3001)
            self.assertEqual(config.resolve_port(AppConfig(port=8080), 3001), 8080)
        with patch.object(config, "PORT", 9000):
            self.assertEqual(config.resolve_port(AppConfig(port=8080), 3001), 9000)

    def test_env_helpers(self) -> None:
        with patch.dict("os.environ", {"AAPPS_FLAG": "yes", "AAPPS_NUM": "12", "AAPPS_BAD": "x"}):
            self.assertTrue(config._env_bool("AAPPS_FLAG"))
            self.assertFalse(config._env_bool("AAPPS_UNSET"))
            self.assertEqual(config._env_int("AAPPS_NUM", 1), 12)
            self.assertEqual(config._env_int("AAPPS_BAD", 1), 1)


if __name__ == "__main__":
    unittest.main()
