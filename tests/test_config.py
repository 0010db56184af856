"""Tests for configuration loading."""

from __future__ import annotations

import os
import tempfile
import unittest
import warnings
from pathlib import Path
from unittest import mock

from chunkvault.common.constants import DEFAULT_CHUNK_SIZE, MAX_CHUNK_SIZE_CAP
from chunkvault.config import load_config, validate_token
from chunkvault.utils import ConfigError

TOKEN = "MTA1NzY4NDY1NzE4NjU2MzIwMA.GhXx3Q.abcdefghijklmnopqrstuvwxyz0123"


class TestConfig(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.env_file = Path(self.temp_dir.name) / ".env"

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def _load(self, env: dict):
        with mock.patch.dict(os.environ, env, clear=True):
            return load_config(self.env_file)

    def test_validate_token(self) -> None:
        self.assertTrue(validate_token(TOKEN))
        self.assertFalse(validate_token("not-a-token"))
        self.assertFalse(validate_token(""))

    def test_defaults_and_generated_key(self) -> None:
        config = self._load({"DISCORD_BOT_TOKEN": TOKEN})
        self.assertEqual(config.max_chunk_size, DEFAULT_CHUNK_SIZE)
        self.assertIsNone(config.storage_channel_id)
        self.assertTrue(config.encryption_key)
        saved = self.env_file.read_text(encoding="utf-8")
        self.assertIn(f"ENCRYPTION_KEY={config.encryption_key}", saved)

    def test_explicit_values(self) -> None:
        config = self._load(
            {
                "DISCORD_BOT_TOKEN": TOKEN,
                "STORAGE_CHANNEL_ID": "123456789",
                "ENCRYPTION_KEY": "hunter2",
                "MAX_CHUNK_SIZE": "1048576",
                "MAX_RETRY_ATTEMPTS": "5",
                "RETRY_BACKOFF": "0.25",
            }
        )
        self.assertEqual(config.storage_channel_id, "123456789")
        self.assertEqual(config.encryption_key, "hunter2")
        self.assertEqual(config.max_chunk_size, 1048576)
        self.assertEqual(config.max_retry_attempts, 5)
        self.assertEqual(config.retry_backoff, 0.25)

    def test_chunk_size_is_capped(self) -> None:
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            config = self._load({"DISCORD_BOT_TOKEN": TOKEN, "MAX_CHUNK_SIZE": str(MAX_CHUNK_SIZE_CAP + 1)})
        self.assertEqual(config.max_chunk_size, MAX_CHUNK_SIZE_CAP)
        self.assertTrue(any(issubclass(item.category, RuntimeWarning) for item in caught))

    def test_missing_token(self) -> None:
        with self.assertRaises(ConfigError):
            self._load({})

    def test_invalid_values(self) -> None:
        for env in (
            {"STORAGE_CHANNEL_ID": "general"},
            {"MAX_CHUNK_SIZE": "big"},
            {"MAX_RETRY_ATTEMPTS": "0"},
            {"RETRY_BACKOFF": "-1"},
        ):
            with self.subTest(env=env):
                with self.assertRaises(ConfigError):
                    self._load({"DISCORD_BOT_TOKEN": TOKEN, **env})


if __name__ == "__main__":
    unittest.main()
