import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from chad.config.loader import DEFAULTS, build_config, get_config
from chad.config.validator import ConfigValidationError, validate_config

ENV = {
    "DISCORD_TOKEN": "discord-token",
    "OPENROUTER_API_KEY": "or-key",
    "BRAVE_API_KEY": "brave-key",
}


class ConfigTests(unittest.TestCase):
    def setUp(self):
        # keep a developer's local .env out of the picture
        patcher = mock.patch("chad.config.loader.load_dotenv")
        patcher.start()
        self.addCleanup(patcher.stop)

    def _build(self, data, env=ENV):
        with mock.patch.dict(os.environ, env, clear=True):
            return build_config(data)

    def test_defaults_and_env_secrets(self):
        cfg = self._build({})
        self.assertEqual(cfg["bot_token"], "discord-token")
        self.assertEqual(cfg["openrouter"]["api_key"], "or-key")
        self.assertEqual(cfg["search_api_key"], "brave-key")
        self.assertEqual(cfg["rate_limit"], DEFAULTS["rate_limit"])
        self.assertEqual(cfg["prefix"], "!")
        validate_config(cfg)

    def test_file_values_win_over_env(self):
        cfg = self._build({"bot_token": "from-file", "openrouter": {"model": "x/y"}})
        self.assertEqual(cfg["bot_token"], "from-file")
        self.assertEqual(cfg["openrouter"]["model"], "x/y")
        self.assertEqual(cfg["openrouter"]["max_tokens"], DEFAULTS["openrouter"]["max_tokens"])

    def test_defaults_are_not_shared(self):
        cfg = self._build({})
        cfg["permissions"]["admin_ids"].append(1)
        self.assertEqual(DEFAULTS["permissions"]["admin_ids"], [])

    def test_missing_tokens_fail(self):
        cfg = self._build({}, env={})
        with self.assertLogs("chad.config.validator", level="ERROR") as logs:
            with self.assertRaises(ConfigValidationError):
                validate_config(cfg)
        output = "\n".join(logs.output)
        self.assertIn("DISCORD_TOKEN", output)
        self.assertIn("OPENROUTER_API_KEY", output)

    def test_missing_search_key_only_warns(self):
        env = {k: v for k, v in ENV.items() if k != "BRAVE_API_KEY"}
        cfg = self._build({}, env=env)
        with self.assertLogs("chad.config.validator", level="WARNING") as logs:
            validate_config(cfg)
        self.assertTrue(all("WARNING" in line for line in logs.output))

    def test_bad_values_fail(self):
        for data in (
            {"rate_limit": {"max_requests": 0}},
            {"rate_limit": {"window": -5}},
            {"rate_limit": {"max_requests": True}},
            {"engage_chance": 1.5},
            {"prefix": ""},
            {"auto_save_interval": 0},
            {"openrouter": {"temperature": 3}},
            {"openrouter": {"max_messages_in_context": 2.5}},
            {"permissions": {"admin_ids": "123"}},
        ):
            with self.subTest(data=data):
                cfg = self._build(data)
                with self.assertLogs("chad.config.validator", level="ERROR"):
                    with self.assertRaises(ConfigValidationError):
                        validate_config(cfg)


class GetConfigTests(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        patcher = mock.patch("chad.config.loader.load_dotenv")
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_loads_yaml_file(self):
        path = Path(self.tmp.name) / "config.yaml"
        path.write_text("prefix: '?'\nrate_limit:\n  max_requests: 3\n", encoding="utf-8")
        with mock.patch.dict(os.environ, ENV, clear=True):
            cfg = get_config(str(path))
        self.assertEqual(cfg["prefix"], "?")
        self.assertEqual(cfg["rate_limit"]["max_requests"], 3)
        self.assertEqual(cfg["rate_limit"]["window"], 60)

    def test_missing_file_exits(self):
        with self.assertLogs(level="ERROR"):
            with self.assertRaises(SystemExit) as ctx:
                get_config(str(Path(self.tmp.name) / "nope.yaml"))
        self.assertEqual(ctx.exception.code, 1)

    def test_invalid_config_exits(self):
        path = Path(self.tmp.name) / "config.yaml"
        path.write_text("engage_chance: 7\n", encoding="utf-8")
        with mock.patch.dict(os.environ, ENV, clear=True):
            with self.assertLogs(level="ERROR"):
                with self.assertRaises(SystemExit):
                    get_config(str(path))


if __name__ == "__main__":
    unittest.main()
