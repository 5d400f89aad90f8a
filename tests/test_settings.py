"""
Test cases for configuration.
"""
import argparse
import json
import os
import tempfile
import unittest

from handspell.config.settings import (
    Config, DEFAULT_PHRASES, PhraseConfig, StabilityConfig, load_phrases,
)
from handspell.main import build_config


class TestConfigValidation(unittest.TestCase):
    """Test dataclass defaults and validation."""

    def test_defaults(self):
        config = Config()
        self.assertEqual(config.stability.confidence_threshold, 0.65)
        self.assertEqual(config.stability.buffer_capacity, 10)
        self.assertEqual(config.stability.stale_horizon_ms, 2000)
        self.assertEqual(config.phrases.cooldown_ms, 3000)
        self.assertEqual(config.phrases.window, 5)
        self.assertEqual(config.phrases.history_capacity, 5)
        self.assertFalse(config.phrases.collapse_repeats)
        self.assertEqual(config.composer.commit_delay_ms, 800)

    def test_phrase_dictionaries_are_independent(self):
        first, second = PhraseConfig(), PhraseConfig()
        first.phrases["ZZZ"] = "Sleep"
        self.assertNotIn("ZZZ", second.phrases)
        self.assertNotIn("ZZZ", DEFAULT_PHRASES)

    def test_invalid_threshold(self):
        for value in (0.0, -0.1, 1.5):
            with self.subTest(value=value):
                with self.assertRaises(ValueError):
                    StabilityConfig(confidence_threshold=value)

    def test_invalid_buffer(self):
        with self.assertRaises(ValueError):
            StabilityConfig(buffer_capacity=0)
        with self.assertRaises(ValueError):
            StabilityConfig(stale_horizon_ms=-5)

    def test_invalid_history(self):
        with self.assertRaises(ValueError):
            PhraseConfig(history_capacity=0)


class TestLoadPhrases(unittest.TestCase):
    """Test loading a phrase dictionary from JSON."""

    def write(self, content):
        fd, path = tempfile.mkstemp(suffix=".json")
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        self.addCleanup(os.remove, path)
        return path

    def test_keeps_order_and_uppercases(self):
        path = self.write(json.dumps({"hi": "Hi", "bye": "Bye"}))
        phrases = load_phrases(path)
        self.assertEqual(list(phrases.items()), [("HI", "Hi"), ("BYE", "Bye")])

    def test_rejects_non_object(self):
        with self.assertRaises(ValueError):
            load_phrases(self.write("[1, 2]"))

    def test_rejects_non_string_values(self):
        with self.assertRaises(ValueError):
            load_phrases(self.write('{"HI": 3}'))


class TestBuildConfig(unittest.TestCase):
    """Test command line overrides."""

    def args(self, **overrides):
        values = dict(host="0.0.0.0", port=9000, camera=1, log_level="DEBUG",
                      debug=False, threshold=None, phrases=None)
        values.update(overrides)
        return argparse.Namespace(**values)

    def test_overrides(self):
        config = build_config(self.args(threshold=0.8))
        self.assertEqual(config.server.host, "0.0.0.0")
        self.assertEqual(config.server.port, 9000)
        self.assertEqual(config.camera.device_id, 1)
        self.assertEqual(config.stability.confidence_threshold, 0.8)
        self.assertEqual(config.stability.buffer_capacity, 10)

    def test_invalid_threshold(self):
        with self.assertRaises(ValueError):
            build_config(self.args(threshold=2.0))


if __name__ == "__main__":
    unittest.main()
