"""
WAHA Pairing Configuration Module

Provides centralized configuration management for the pairing client.
"""

from .schema import AppConfig, ConfigError, GatewayConfig, LoggingConfig, PairingConfig, UIConfig
from .loader import create_default_config, load_config, load_config_from_file

__all__ = [
    "AppConfig",
    "ConfigError",
    "GatewayConfig",
    "LoggingConfig",
    "PairingConfig",
    "UIConfig",
    "create_default_config",
    "load_config",
    "load_config_from_file",
]
