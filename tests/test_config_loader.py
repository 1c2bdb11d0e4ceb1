import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from commit_composer.config.loader import DEFAULTS, ConfigError, Settings, load_config, load_settings


class TestConfigLoader(unittest.TestCase):
    """Tests for the configuration loader."""

    def _load(self, config=None, raw=None, environ=None):
        with tempfile.TemporaryDirectory() as tmp:
            config_dir = Path(tmp)
            if config is not None:
                (config_dir / "config.json").write_text(json.dumps(config))
            if raw is not None:
                (config_dir / "config.json").write_text(raw)
            with patch("commit_composer.config.loader._get_config_directory", return_value=config_dir):
                return load_config(environ={} if environ is None else environ)

    def test_missing_file_gives_defaults(self):
        self.assertEqual(self._load(), DEFAULTS)

    def test_file_values_override_defaults(self):
        result = self._load({"model": "qwen2.5-coder", "max_input_tokens": 8192, "emoji": True})
        self.assertEqual(result["model"], "qwen2.5-coder")
        self.assertEqual(result["max_input_tokens"], 8192)
        self.assertTrue(result["emoji"])
        self.assertEqual(result["port"], 11434)

    def test_invalid_json(self):
        with self.assertRaises(ConfigError):
            self._load(raw="{invalid}")

    def test_top_level_must_be_object(self):
        with self.assertRaises(ConfigError):
            self._load(raw="[1, 2]")

    def test_unknown_keys_are_ignored(self):
        result = self._load({"max_tokens": 512, "model": "m"})
        self.assertNotIn("max_tokens", result)
        self.assertEqual(result["model"], "m")

    def test_type_errors(self):
        for bad in (
            {"port": "11434"},
            {"max_input_tokens": True},
            {"emoji": "yes"},
            {"exclude_patterns": "dist/"},
            {"exclude_patterns": [1]},
            {"provider": "gemini"},
            {"max_output_tokens": 0},
        ):
            with self.assertRaises(ConfigError, msg=str(bad)):
                self._load(bad)

    def test_environment_overrides(self):
        environ = {
            "ACP_MAX_INPUT_TOKENS": "16000",
            "ACP_EMOJI": "true",
            "ACP_REQUEST_TIMEOUT": "2.5",
            "ACP_EXCLUDE_PATTERNS": r"\.md$, docs/",
            "ACP_PROVIDER": "openai",
            "ACP_API_KEY": "sk-test",
        }
        result = self._load({"max_input_tokens": 8192}, environ=environ)
        self.assertEqual(result["max_input_tokens"], 16000)
        self.assertIs(result["emoji"], True)
        self.assertEqual(result["request_timeout"], 2.5)
        self.assertEqual(result["exclude_patterns"], [r"\.md$", "docs/"])
        self.assertEqual(result["provider"], "openai")
        self.assertEqual(result["api_key"], "sk-test")

    def test_invalid_environment_values(self):
        for environ in ({"ACP_PORT": "abc"}, {"ACP_ONE_LINE": "maybe"}, {"ACP_REQUEST_TIMEOUT": "soon"}):
            with self.assertRaises(ConfigError, msg=str(environ)):
                self._load(environ=environ)

    def test_load_settings(self):
        with tempfile.TemporaryDirectory() as tmp:
            config_dir = Path(tmp)
            (config_dir / "config.json").write_text(json.dumps({"language": "de", "one_line": True}))
            with patch("commit_composer.config.loader._get_config_directory", return_value=config_dir):
                settings = load_settings(environ={})
        self.assertIsInstance(settings, Settings)
        self.assertEqual(settings.language, "de")
        self.assertTrue(settings.one_line)
        self.assertEqual(settings.max_output_tokens, 500)


if __name__ == "__main__":
    unittest.main()
