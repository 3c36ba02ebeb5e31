#!/usr/bin/env python3

import os
import json
import tomllib
from pathlib import Path

import logging
import sys

import yaml

from .domain.entry_point import SUPPORTED_FORMAT_PROPERTIES
from .exit_codes import ConfigError

LOG_FORMAT = "%(levelname)s: %(message)s"

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

logger = logging.getLogger("pkgrecompile")


def configure_logging(level="info"):
    """
    Configure the root logger: one stderr handler, `LEVEL: message` lines.

    Called once by the CLI and once by every cluster worker process.

    Args:
        level: A name from LOG_LEVELS or a numeric logging level
    """
    if isinstance(level, str):
        if level.lower() not in LOG_LEVELS:
            raise ConfigError(f"Invalid log level '{level}'. Choose one of: {', '.join(LOG_LEVELS)}")
        level = LOG_LEVELS[level.lower()]

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[
            logging.StreamHandler(sys.stderr)  # Default to stderr
        ],
        force=True,
    )
    logger.setLevel(level)


def get_config_path():
    """Get the path to the user configuration file.

    Checks in order:
    1. PKGRECOMPILE_CONFIG environment variable
    2. ~/.pkgrecompile/ directory
    """
    if 'PKGRECOMPILE_CONFIG' in os.environ:
        path = Path(os.environ['PKGRECOMPILE_CONFIG'])
        if path.exists():
            return path

    config_dir = Path.home() / '.pkgrecompile'
    for filename in ['config.json', 'config.toml', 'config.yaml', 'config.yml']:
        path = config_dir / filename
        if path.exists():
            return path

    # If no file exists, return default path for saving
    return config_dir / 'config.json'


def load_config():
    """Load configuration: defaults, then the user file, then the environment."""
    config_path = get_config_path()

    config = get_default_config()

    if config_path.exists():
        try:
            if config_path.suffix.lower() in ['.toml']:
                with open(config_path, 'rb') as f:
                    file_config = tomllib.load(f)
            elif config_path.suffix.lower() in ['.yaml', '.yml']:
                with open(config_path, 'r') as f:
                    file_config = yaml.safe_load(f)
            else:
                with open(config_path, 'r') as f:
                    file_config = json.load(f)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigError(f"Error loading config from {config_path}: {e}")

        if file_config:
            if not isinstance(file_config, dict):
                raise ConfigError(f"Config file {config_path} must contain a mapping")
            config = merge_configs(config, file_config)
        logger.debug(f"Loaded user configuration from {config_path}")

    config = apply_env_overrides(config)

    return config


def get_default_config():
    """Get default configuration."""
    return {
        "run": {
            "source": "./node_modules",
            "properties": list(SUPPORTED_FORMAT_PROPERTIES),
            "compile_all_formats": True,
            "create_new_entry_points": False,
            "backup": True,
            "async_mode": False,
            "max_workers": 8,
            "transformer": "pkgrecompile.services.transformer:PassthroughTransformer",
        },
        "logging": {
            "level": "info",
        },
    }


def merge_configs(base_config, override_config):
    """
    Recursively merge two configuration dictionaries.

    Args:
        base_config (dict): Base configuration
        override_config (dict): Configuration to merge/override with

    Returns:
        dict: Merged configuration
    """
    merged = base_config.copy()

    for key, value in override_config.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            # Recursively merge nested dictionaries
            merged[key] = merge_configs(merged[key], value)
        else:
            # Override or add new key
            merged[key] = value

    return merged


def apply_env_overrides(config):
    """
    Apply environment variable overrides to configuration.
    Environment variables follow the pattern: PKGRECOMPILE_SECTION_KEY
    For example: PKGRECOMPILE_RUN_MAX_WORKERS=4
    """
    env_prefix = "PKGRECOMPILE_"

    for env_key, value in os.environ.items():
        if not env_key.startswith(env_prefix) or env_key == "PKGRECOMPILE_CONFIG":
            continue

        key_parts = env_key[len(env_prefix):].lower().split('_')

        # Convert value
        if value.lower() in ('true', 'yes', 'on'):
            typed_value = True
        elif value.lower() in ('false', 'no', 'off'):
            typed_value = False
        elif value.isdigit():
            typed_value = int(value)
        elif ',' in value:
            typed_value = [part.strip() for part in value.split(',') if part.strip()]
        else:
            typed_value = value

        current_level = config
        i = 0
        while i < len(key_parts):
            # Find the longest key in current_level that is a prefix of the remaining key_parts
            best_match_len = 0
            matched_key = None

            for config_key in current_level.keys():
                config_key_parts_from_key = config_key.split('_')
                if key_parts[i : i + len(config_key_parts_from_key)] == config_key_parts_from_key:
                    if len(config_key_parts_from_key) > best_match_len:
                        best_match_len = len(config_key_parts_from_key)
                        matched_key = config_key

            if matched_key:
                # If we are at the end of the env var, we have found the key to set
                if i + best_match_len == len(key_parts):
                    current_level[matched_key] = typed_value
                    break

                # Otherwise, we descend into the dictionary
                if isinstance(current_level[matched_key], dict):
                    current_level = current_level[matched_key]
                    i += best_match_len
                else:
                    # Path conflict, e.g., env var is longer but we found a non-dict value
                    break
            else:
                # No match found
                break

    return config
