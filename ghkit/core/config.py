"""
config.py - Configuration management for ghkit

This module handles loading, validating, and managing configuration for the
ghkit commands. Values given on the command line or through INPUT_* action
inputs always take precedence over the configuration file.
"""

import copy
import os
from typing import Any, Dict, List, Optional, cast

import yaml

from .errors import ConfigurationError
from .findings import SEVERITY_LEVELS

SCAN_TOOLS = ["gitleaks", "trivy", "syft", "checkov"]
PROVIDER_TAGS = ["raw", "doppler", "1password", "onepassword"]
FAIL_ON_CHOICES = SEVERITY_LEVELS + ["never"]

DEFAULT_CONFIG: Dict[str, Any] = {
    "auth": {
        "provider": "raw",
        "export_env_var": "ANTHROPIC_API_KEY",
        "set_github_output": True,
        "doppler_key_name": "ANTHROPIC_API_KEY",
    },
    "app_token": {
        "configure_git": True,
        "export_env_var": "GH_TOKEN",
    },
    "session": {
        "cli_home": "~/.claude",
    },
    "template": {
        "strict": False,
    },
    "scan": {
        "tools": list(SCAN_TOOLS),
        "report_dir": "security-reports",
        "fail_on": "never",
    },
}


def get_config_paths() -> List[str]:
    """
    Get list of possible config file locations in priority order

    Returns:
        List of config file paths to check
    """
    paths = []

    paths.append(os.path.join(os.getcwd(), "ghkit.yml"))
    paths.append(os.path.join(os.getcwd(), "ghkit.yaml"))
    paths.append(os.path.join(os.getcwd(), ".ghkit.yml"))
    paths.append(os.path.join(os.getcwd(), ".ghkit.yaml"))

    home_dir = os.path.expanduser("~")
    paths.append(os.path.join(home_dir, ".ghkit.yml"))
    paths.append(os.path.join(home_dir, ".config", "ghkit", "config.yml"))
    paths.append(os.path.join(home_dir, ".config", "ghkit", "config.yaml"))

    return paths


def merge_configs(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Recursively merge two config dictionaries

    Args:
        base: Base configuration
        override: Configuration to override base

    Returns:
        Merged configuration dictionary
    """
    result = base.copy()

    for key, override_value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(override_value, dict):
            result[key] = merge_configs(result[key], override_value)
        else:
            result[key] = override_value

    return result


def _validate_section_keys(config: Dict[str, Any], section: str) -> Dict[str, Any]:
    values = config[section]
    if not isinstance(values, dict):
        raise ConfigurationError(f"'{section}' must be a dictionary")

    for key in values:
        if key not in DEFAULT_CONFIG[section]:
            raise ConfigurationError(f"Unknown configuration option '{section}.{key}'")

    return values


def _validate_bool(values: Dict[str, Any], section: str, key: str) -> None:
    if key in values and not isinstance(values[key], bool):
        raise ConfigurationError(f"'{section}.{key}' must be a boolean")


def _validate_str(values: Dict[str, Any], section: str, key: str) -> None:
    if key in values and (not isinstance(values[key], str) or not values[key].strip()):
        raise ConfigurationError(f"'{section}.{key}' must be a non-empty string")


def _validate_auth(config: Dict[str, Any]) -> None:
    """Validate secret retrieval defaults"""

    if "auth" not in config:
        return

    values = _validate_section_keys(config, "auth")
    _validate_str(values, "auth", "provider")
    _validate_str(values, "auth", "export_env_var")
    _validate_str(values, "auth", "doppler_key_name")
    _validate_bool(values, "auth", "set_github_output")

    if "provider" in values and values["provider"].strip().lower() not in PROVIDER_TAGS:
        valid = ", ".join(PROVIDER_TAGS)
        raise ConfigurationError(
            f"Invalid value '{values['provider']}' for 'auth.provider'. Must be one of: {valid}"
        )


def _validate_scan(config: Dict[str, Any]) -> None:
    """Validate scanner configuration"""

    if "scan" not in config:
        return

    values = _validate_section_keys(config, "scan")

    if "tools" in values:
        if not isinstance(values["tools"], list):
            raise ConfigurationError("'scan.tools' must be a list")
        for tool in values["tools"]:
            if tool not in SCAN_TOOLS:
                valid = ", ".join(SCAN_TOOLS)
                raise ConfigurationError(
                    f"Unknown scanner '{tool}' in 'scan.tools'. Must be one of: {valid}"
                )

    _validate_str(values, "scan", "report_dir")

    if "fail_on" in values:
        fail_on = str(values["fail_on"])
        if fail_on not in FAIL_ON_CHOICES:
            valid = ", ".join(FAIL_ON_CHOICES)
            raise ConfigurationError(
                f"Invalid value '{fail_on}' for 'scan.fail_on'. Must be one of: {valid}"
            )


def validate_config(config: Dict[str, Any]) -> None:
    """Validate configuration structure and values"""

    for key in config.keys():
        if key not in DEFAULT_CONFIG:
            raise ConfigurationError(f"Unknown configuration option '{key}'")

    _validate_auth(config)

    if "app_token" in config:
        values = _validate_section_keys(config, "app_token")
        _validate_bool(values, "app_token", "configure_git")
        _validate_str(values, "app_token", "export_env_var")

    if "session" in config:
        values = _validate_section_keys(config, "session")
        _validate_str(values, "session", "cli_home")

    if "template" in config:
        values = _validate_section_keys(config, "template")
        _validate_bool(values, "template", "strict")

    _validate_scan(config)


def _read_config_file(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            user_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Error parsing YAML configuration: {e}")
    except OSError as e:
        raise ConfigurationError(f"Error loading configuration: {e}")

    if user_config is None:
        return {}
    if not isinstance(user_config, dict):
        raise ConfigurationError(f"Configuration file {path} must contain a mapping")

    validate_config(user_config)
    return user_config


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from file or use defaults

    Args:
        config_path: Path to configuration file, or None to auto-detect

    Returns:
        Loaded configuration dictionary

    Raises:
        ConfigurationError: If configuration file is invalid
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    if config_path:
        if not os.path.exists(config_path):
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        return merge_configs(config, _read_config_file(config_path))

    for path in get_config_paths():
        if os.path.exists(path):
            return merge_configs(config, _read_config_file(path))

    return config


def generate_default_config(output_path: Optional[str] = None) -> str:
    """
    Generate default configuration YAML

    Args:
        output_path: Path to save default configuration to, or None to return as string

    Returns:
        Default configuration YAML

    Raises:
        ConfigurationError: If configuration cannot be saved
    """
    default_config_yaml = cast(
        str,
        yaml.dump(DEFAULT_CONFIG, default_flow_style=False, sort_keys=False),
    )

    if output_path:
        try:
            os.makedirs(os.path.dirname(os.path.abspath(output_path)), exist_ok=True)

            with open(output_path, "w", encoding="utf-8") as f:
                f.write(default_config_yaml)
        except OSError as e:
            raise ConfigurationError(f"Error saving default configuration: {e}")

    return default_config_yaml
