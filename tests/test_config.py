#!/usr/bin/env python3
"""
Tests for configuration loading
"""

import json
import os
import sys
import tempfile
import unittest
from unittest.mock import patch

# Add the project root to the path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import config
from config import Config, ConfigError, default_config_path, parse_config_file


class TestConfig(unittest.TestCase):
    """Test cases for configuration loading"""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)
        patcher = patch.object(config, "STABILITY_API_KEY", None)
        patcher.start()
        self.addCleanup(patcher.stop)

    def write(self, content, name="config.json"):
        path = os.path.join(self.tmpdir.name, name)
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
        return path

    def test_config_values(self):
        """Test that module settings have expected types"""
        self.assertIsInstance(config.STABILITY_API_BASE_URL, str)
        self.assertTrue(config.STABILITY_API_BASE_URL.startswith("http"))
        self.assertIsInstance(config.STABILITY_REQUEST_TIMEOUT, float)
        self.assertIsInstance(config.LOG_LEVEL, str)

    def test_parse_full_file(self):
        """Test that all three settings are read"""
        path = self.write(json.dumps({
            "api_key": "sk-file",
            "output_directory": "/tmp/images",
            "post_generation_command": "feh",
        }))
        self.assertEqual(parse_config_file(path), Config(
            api_key="sk-file",
            output_directory="/tmp/images",
            post_generation_command="feh",
        ))

    def test_missing_keys_default_to_empty(self):
        """Test that absent settings are empty strings"""
        path = self.write(json.dumps({"api_key": "sk-file"}))
        parsed = parse_config_file(path)
        self.assertEqual(parsed.output_directory, "")
        self.assertEqual(parsed.post_generation_command, "")

    def test_api_key_override(self):
        """Test that an explicit or environment API key wins over the file"""
        path = self.write(json.dumps({"api_key": "sk-file"}))
        self.assertEqual(parse_config_file(path, api_key_override="sk-arg").api_key, "sk-arg")
        with patch.object(config, "STABILITY_API_KEY", "sk-env"):
            self.assertEqual(parse_config_file(path).api_key, "sk-env")

    def test_missing_file(self):
        """Test that a missing file raises ConfigError"""
        with self.assertRaises(ConfigError):
            parse_config_file(os.path.join(self.tmpdir.name, "nope.json"))

    def test_invalid_json(self):
        """Test that malformed JSON raises ConfigError"""
        with self.assertRaises(ConfigError):
            parse_config_file(self.write("{not json"))

    def test_wrong_shape(self):
        """Test that non-object documents and non-string values are rejected"""
        with self.assertRaises(ConfigError):
            parse_config_file(self.write("[1, 2]"))
        with self.assertRaises(ConfigError):
            parse_config_file(self.write(json.dumps({"api_key": 42})))

    def test_default_config_path(self):
        """Test the default settings location and its override"""
        with patch.object(config, "CONFIG_PATH", ""):
            path = default_config_path()
        self.assertTrue(path.endswith(os.path.join(".config", "sdcli", "config.json")))
        with patch.object(config, "CONFIG_PATH", "/etc/sdcli.json"):
            self.assertEqual(default_config_path(), "/etc/sdcli.json")


if __name__ == '__main__':
    unittest.main()
