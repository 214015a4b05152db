"""
Configuration Loader

Loads and validates configuration from YAML files with environment variable substitution.
"""

import yaml
import os
from pathlib import Path
from typing import Dict, Any, Optional
import re
import logging


DEFAULT_CONFIG: Dict[str, Any] = {
    'logging': {
        'level': 'INFO',
        'format': 'text',
        'output': 'stderr',
    },
    'normalization': {
        'aliases': {},
        'alias_overrides': {},
        'warn_on_invalid_formats': True,
    },
    'audit': {
        'default_limit': 100,
    },
    'import': {
        'batch_size': 50,
    },
    'storage': {
        'backend': 'json',
        'data_dir': 'data',
    },
}


ENV_VAR_PATTERN = re.compile(r'\$\{([A-Za-z_][A-Za-z0-9_]*)(?::-([^}]*))?\}')


class ConfigLoader:
    """
    Loads configuration from YAML files with environment variable support.

    Supports:
    - Environment variable substitution ${VAR_NAME} and ${VAR_NAME:-fallback}
    - Defaults for every section the tool reads
    - Validation
    """

    REQUIRED_SECTIONS = ['normalization', 'audit', 'storage']

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize config loader.

        Args:
            config_path: Path to configuration file, or None for defaults only
        """
        self.config_path = Path(config_path) if config_path else None
        self.logger = logging.getLogger(self.__class__.__name__)
        self.config: Dict[str, Any] = {}

    def load(self) -> Dict[str, Any]:
        """
        Load configuration from file, layered over the defaults.

        Returns:
            Configuration dictionary
        """
        if self.config_path is None:
            self.config = _merge(DEFAULT_CONFIG, {})
            return self.config

        if not self.config_path.exists():
            raise FileNotFoundError(f"Config file not found: {self.config_path}")

        try:
            with open(self.config_path, 'r') as f:
                content = f.read()

            content = self._substituteEnvVars(content)

            loaded = yaml.safe_load(content) or {}
            if not isinstance(loaded, dict):
                raise ValueError(f"Top level of {self.config_path} must be a mapping")

            self.config = _merge(DEFAULT_CONFIG, loaded)

            self.logger.info(f"Configuration loaded from {self.config_path}")
            return self.config

        except Exception as e:
            self.logger.error(f"Error loading configuration: {e}")
            raise

    def _substituteEnvVars(self, content: str) -> str:
        """
        Substitute ``${VAR}`` and ``${VAR:-fallback}`` references.

        An unset variable without a fallback is left in place and reported,
        so validation points at the setting that is still unresolved.
        """
        def replacer(match):
            name, fallback = match.group(1), match.group(2)
            value = os.environ.get(name)
            if value is not None:
                return value
            if fallback is not None:
                return fallback
            self.logger.warning(f"Environment variable not set: {name}")
            return match.group(0)

        return ENV_VAR_PATTERN.sub(replacer, content)

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a dotted key such as ``import.batch_size``."""
        node: Any = self.config
        for part in key.split('.'):
            if not isinstance(node, dict) or node.get(part) is None:
                return default
            node = node[part]
        return node

    def validate(self) -> bool:
        for section in self.REQUIRED_SECTIONS:
            if not isinstance(self.config.get(section), dict):
                self.logger.error(f"Missing required configuration section: {section}")
                return False

        batchSize = self.get('import.batch_size')
        if not isinstance(batchSize, int) or batchSize < 1:
            self.logger.error(f"import.batch_size must be a positive integer, got {batchSize!r}")
            return False

        if self.get('storage.backend') not in ('json', 'memory'):
            self.logger.error(f"Unknown storage backend: {self.get('storage.backend')}")
            return False

        return True


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = {}
    for key, value in base.items():
        merged[key] = _merge(value, {}) if isinstance(value, dict) else value

    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value

    return merged
