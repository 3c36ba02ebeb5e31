"""
Unit tests for pkgrecompile.config module
"""
import json
import logging
import os
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from pkgrecompile.config import (
    apply_env_overrides,
    configure_logging,
    get_config_path,
    get_default_config,
    load_config,
    merge_configs,
)
from pkgrecompile.exit_codes import ConfigError


class TestConfigManagement(unittest.TestCase):
    """Test configuration loading"""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.env = patch.dict(os.environ, {'HOME': self.temp_dir})
        self.env.start()
        self.config_dir = Path(self.temp_dir) / '.pkgrecompile'

    def tearDown(self):
        self.env.stop()
        shutil.rmtree(self.temp_dir)

    def write_config(self, name, text):
        self.config_dir.mkdir(parents=True, exist_ok=True)
        path = self.config_dir / name
        path.write_text(text)
        return path

    def test_get_default_config(self):
        """Default configuration has both sections"""
        config = get_default_config()

        self.assertIn('run', config)
        self.assertIn('logging', config)
        self.assertEqual(config['run']['source'], './node_modules')
        self.assertTrue(config['run']['backup'])
        self.assertFalse(config['run']['async_mode'])
        self.assertEqual(config['logging']['level'], 'info')

    def test_load_config_no_file(self):
        """Without a file the defaults are returned"""
        self.assertEqual(load_config(), get_default_config())
        self.assertEqual(get_config_path(), self.config_dir / 'config.json')

    def test_load_json_config(self):
        self.write_config('config.json', json.dumps({'run': {'max_workers': 2}}))

        config = load_config()

        self.assertEqual(config['run']['max_workers'], 2)
        self.assertEqual(config['run']['source'], './node_modules')

    def test_load_yaml_config(self):
        self.write_config('config.yaml', "run:\n  properties: [esm5, module]\nlogging:\n  level: debug\n")

        config = load_config()

        self.assertEqual(config['run']['properties'], ['esm5', 'module'])
        self.assertEqual(config['logging']['level'], 'debug')

    def test_load_toml_config(self):
        self.write_config('config.toml', '[run]\ncreate_new_entry_points = true\n')

        self.assertTrue(load_config()['run']['create_new_entry_points'])

    def test_config_env_var_wins(self):
        self.write_config('config.json', json.dumps({'run': {'max_workers': 2}}))
        other = Path(self.temp_dir) / 'other.json'
        other.write_text(json.dumps({'run': {'max_workers': 5}}))

        with patch.dict(os.environ, {'PKGRECOMPILE_CONFIG': str(other)}):
            self.assertEqual(get_config_path(), other)
            self.assertEqual(load_config()['run']['max_workers'], 5)

    def test_invalid_config_file(self):
        self.write_config('config.json', '{broken')

        with self.assertRaises(ConfigError):
            load_config()

    def test_config_must_be_a_mapping(self):
        self.write_config('config.yaml', '- just\n- a list\n')

        with self.assertRaises(ConfigError):
            load_config()


class TestConfigMerging(unittest.TestCase):

    def test_merge_configs(self):
        base = {'run': {'source': 'a', 'backup': True}, 'logging': {'level': 'info'}}
        merged = merge_configs(base, {'run': {'source': 'b'}, 'extra': 1})

        self.assertEqual(merged['run'], {'source': 'b', 'backup': True})
        self.assertEqual(merged['extra'], 1)
        self.assertEqual(base['run']['source'], 'a')

    def test_env_overrides(self):
        env = {
            'PKGRECOMPILE_RUN_MAX_WORKERS': '4',
            'PKGRECOMPILE_RUN_ASYNC_MODE': 'true',
            'PKGRECOMPILE_RUN_PROPERTIES': 'esm5, module',
            'PKGRECOMPILE_LOGGING_LEVEL': 'debug',
            'PKGRECOMPILE_UNKNOWN_KEY': 'ignored',
        }
        with patch.dict(os.environ, env):
            config = apply_env_overrides(get_default_config())

        self.assertEqual(config['run']['max_workers'], 4)
        self.assertIs(config['run']['async_mode'], True)
        self.assertEqual(config['run']['properties'], ['esm5', 'module'])
        self.assertEqual(config['logging']['level'], 'debug')
        self.assertNotIn('unknown', config)


class TestConfigureLogging(unittest.TestCase):

    def setUp(self):
        root = logging.getLogger()
        self.saved = (root.handlers[:], root.level)

    def tearDown(self):
        root = logging.getLogger()
        root.handlers[:], level = self.saved
        root.setLevel(level)
        logging.getLogger('pkgrecompile').setLevel(logging.NOTSET)

    def test_named_level(self):
        configure_logging('debug')
        self.assertEqual(logging.getLogger('pkgrecompile').level, logging.DEBUG)

    def test_numeric_level(self):
        configure_logging(logging.ERROR)
        self.assertEqual(logging.getLogger().level, logging.ERROR)

    def test_invalid_level(self):
        with self.assertRaises(ConfigError):
            configure_logging('chatty')


if __name__ == '__main__':
    unittest.main()
