#!/usr/bin/env python3
"""
Configuration Loader

Handles loading and validating the runner configuration.

Configuration hierarchy (highest priority first):
1. Function overrides (usually the command line)
2. Environment variables (GORUNNER_*)
3. Project-level: .gorunner.json in the current directory, or an explicit file
4. Defaults: Built-in defaults from schema
"""

import os
import json
from pathlib import Path
from typing import Optional, Dict, Any, List
import logging

from pydantic import ValidationError

from gorunner.config_schema import RunnerConfig
from gorunner.errors import config_error

logger = logging.getLogger(__name__)

PROJECT_CONFIG_NAME = '.gorunner.json'


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(',') if item.strip()]


def _parse_bool(value: str) -> bool:
    return value.lower() in ('true', '1', 'yes')


def get_config_path(workspace: Optional[str] = None) -> Optional[Path]:
    """
    Get the project configuration file, if there is one.

    Returns:
        Path to .gorunner.json or None
    """
    base = Path(workspace) if workspace else Path.cwd()
    project_config = base / PROJECT_CONFIG_NAME
    if project_config.exists():
        return project_config
    return None


def load_config_from_file(config_path: Path) -> Dict[str, Any]:
    """
    Load configuration from a JSON file.

    Args:
        config_path: Path to config file

    Returns:
        Config dict

    Raises:
        UserError: if the file is missing or is not a JSON object
    """
    logger.debug(f"Loading configuration from {config_path}")
    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config = json.load(f)
    except FileNotFoundError as e:
        raise config_error(f"config file not found: {config_path}", str(config_path)) from e
    except json.JSONDecodeError as e:
        raise config_error(f"invalid JSON in {config_path}: {e}", str(config_path)) from e

    if not isinstance(config, dict):
        raise config_error(f"{config_path} must contain a JSON object", str(config_path))
    return config


def load_config_from_env() -> Dict[str, Any]:
    """
    Load configuration from environment variables.

    Returns:
        Config dict with environment variable values
    """
    env_config: Dict[str, Any] = {}

    if entry := os.getenv('GORUNNER_ENTRY'):
        env_config['working_directory'] = entry

    if tests := os.getenv('GORUNNER_TESTS'):
        env_config['test_directories'] = _split_list(tests)

    if watch_dirs := os.getenv('GORUNNER_WATCH_DIRS'):
        env_config['watch_dirs'] = _split_list(watch_dirs)

    if exclude_dirs := os.getenv('GORUNNER_EXCLUDE_DIRS'):
        env_config['exclude_dirs'] = _split_list(exclude_dirs)

    if skip_tests := os.getenv('GORUNNER_SKIP_TESTS'):
        env_config['run_tests'] = not _parse_bool(skip_tests)

    if race := os.getenv('GORUNNER_RACE'):
        env_config['race_detector'] = _parse_bool(race)

    if tags := os.getenv('GORUNNER_TAGS'):
        env_config['tags'] = _split_list(tags)

    if ldflags := os.getenv('GORUNNER_LDFLAGS'):
        env_config['ldflags'] = ldflags

    if gcflags := os.getenv('GORUNNER_GCFLAGS'):
        env_config['gcflags'] = gcflags

    if use_dlv := os.getenv('GORUNNER_USE_DLV'):
        env_config['delve'] = {'enabled': _parse_bool(use_dlv)}

    return env_config


def merge_configs(*configs: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Deep merge multiple configuration dictionaries.
    Later configs override earlier ones.

    Args:
        *configs: Configuration dicts to merge (in priority order)

    Returns:
        Merged configuration dict
    """
    result: Dict[str, Any] = {}

    for config in configs:
        if not config:
            continue

        for key, value in config.items():
            if value is None:
                continue

            # Recursively merge nested objects
            if isinstance(value, dict) and isinstance(result.get(key), dict):
                result[key] = merge_configs(result[key], value)
            else:
                result[key] = value

    return result


def _describe_validation_error(error: ValidationError) -> str:
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ())) or "config"
        problems.append(f"{location}: {item.get('msg')}")
    return "; ".join(problems)


def load_config(
    config_file: Optional[str] = None,
    **overrides: Any
) -> RunnerConfig:
    """
    Load configuration from all sources and merge them.

    Args:
        config_file: Optional path to a specific config file
        **overrides: Additional config overrides

    Returns:
        Validated RunnerConfig instance

    Raises:
        UserError: non-recoverable configuration error
    """
    config_dict: Dict[str, Any] = {}

    # 1. Load from file
    if config_file:
        config_dict = merge_configs(config_dict, load_config_from_file(Path(config_file)))
    else:
        config_path = get_config_path()
        if config_path:
            config_dict = merge_configs(config_dict, load_config_from_file(config_path))
            logger.debug(f"Loaded configuration from {config_path}")

    # 2. Load from environment variables
    config_dict = merge_configs(config_dict, load_config_from_env())

    # 3. Apply function overrides (highest priority)
    if overrides:
        config_dict = merge_configs(config_dict, overrides)

    # 4. Validate and create config object
    try:
        config = RunnerConfig(**config_dict)
    except ValidationError as e:
        raise config_error(_describe_validation_error(e), config_file) from e

    logger.debug("Configuration loaded successfully")
    return config


def save_config(config: RunnerConfig, path: Path) -> None:
    """
    Save configuration to a file.

    Args:
        config: Configuration to save
        path: Path to save config file
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)

        config_dict = config.model_dump(mode='json', exclude_none=True)

        with open(path, 'w', encoding='utf-8') as f:
            json.dump(config_dict, f, indent=2, ensure_ascii=False)

        logger.info(f"Configuration saved to {path}")
    except OSError as e:
        logger.error(f"Failed to save configuration to {path}: {e}")
        raise
