"""
Configuration loading for beamdrop
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .models import (
    Config, ServerConfig, LoggingConfig, TransferConfig, UiConfig,
    DEFAULT_CHUNK_SIZE, DEFAULT_PORT
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "beamdrop.yaml"
CONFIG_ENV_VAR = "BEAMDROP_CONFIG"


class ConfigError(Exception):
    """Raised when the configuration file cannot be used"""
    pass


class ConfigManager:
    """Loads the optional YAML configuration file"""

    def __init__(self, config_path: Optional[str] = None):
        if not config_path:
            config_path = os.getenv(CONFIG_ENV_VAR, DEFAULT_CONFIG_PATH)
        self.config_path = Path(config_path).resolve()
        self.config: Optional[Config] = None

    def load_config(self) -> Config:
        """Load configuration from YAML file, falling back to defaults when absent"""
        if not self.config_path.exists():
            logger.debug(f"Configuration file not found: {self.config_path}, using defaults")
            self.config = Config()
            return self.config

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to load configuration {self.config_path}: {e}")

        if not isinstance(data, dict):
            raise ConfigError(f"Configuration root must be a mapping: {self.config_path}")

        try:
            self.config = self._parse_config(data)
        except (AttributeError, TypeError, ValueError) as e:
            raise ConfigError(f"Invalid configuration {self.config_path}: {e}")

        logger.info(f"Configuration loaded from {self.config_path}")
        return self.config

    def _parse_config(self, data: Dict[str, Any]) -> Config:
        """Parse configuration data into Config object"""

        # Server configuration
        server_data = data.get('server') or {}
        server = ServerConfig(
            addr=str(server_data.get('addr', '0.0.0.0')),
            port=int(server_data.get('port', DEFAULT_PORT)),
            keepAliveTimeout=int(server_data.get('keepAliveTimeout', 30)),
        )

        # Logging
        logging_data = data.get('logging') or {}
        logging_config = LoggingConfig(
            json=bool(logging_data.get('json', False)),
            file=logging_data.get('file', '') or '',
            level=str(logging_data.get('level', 'INFO')),
            max_size_mb=int(logging_data.get('max_size_mb', 10)),
            backup_count=int(logging_data.get('backup_count', 3)),
        )

        # Transfers
        transfer_data = data.get('transfer') or {}
        transfer = TransferConfig(
            chunkSize=int(transfer_data.get('chunkSize', DEFAULT_CHUNK_SIZE)),
        )

        # UI
        ui_data = data.get('ui') or {}
        ui = UiConfig(
            noQr=bool(ui_data.get('noQr', False)),
            title=str(ui_data.get('title', 'beamdrop')),
        )

        return Config(
            server=server,
            logging=logging_config,
            transfer=transfer,
            ui=ui,
        )

    def get_config(self) -> Config:
        """Get current configuration"""
        if self.config is None:
            self.config = self.load_config()
        return self.config


def load_config(config_path: Optional[str] = None) -> Config:
    """Load configuration from file"""
    return ConfigManager(config_path).load_config()
