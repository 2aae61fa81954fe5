"""
pairing.yaml loading.

String values may reference the environment as ``${WAHA_API_KEY}`` (must be
set) or ``${WAHA_BASE_URL:-http://localhost:3000}`` (falls back to the text
after ``:-``). References are resolved after YAML parsing, so they never
change the document structure.
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, List, Optional, Union

import yaml

from .schema import AppConfig

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "pairing.yaml"

# ${NAME} or ${NAME:-fallback}
ENV_REFERENCE = re.compile(r'\$\{([^}:]+)(?::-([^}]*))?\}')

DEFAULT_CONFIG_TEMPLATE = """# WAHA Pairing Configuration
# Environment variables can be used: ${VAR_NAME} or ${VAR_NAME:-default}

gateway:
  base_url: "${WAHA_BASE_URL:-http://localhost:3000}"
  api_key: "${WAHA_API_KEY:-}"
  api_prefix: "/api"
  timeout: 30
  retry_attempts: 3
  retry_delay: 1.0
  # Where the gateway should deliver message events for the new session
  webhook_url: ""
  webhook_events:
    - message
    - session.status
  mock_responses: false

pairing:
  session_prefix: "whatsapp-connector"
  qr_window_seconds: 120
  poll_interval: 3
  tick_interval: 1
  connected_delay: 2
  startup_delay: 2
  # pairing_timeout: 300

ui:
  mode: terminal
  web_port: 8200

logging:
  level: INFO
"""


def _env_lookup(match) -> str:
    name, fallback = match.group(1), match.group(2)
    value = os.environ.get(name)
    if value is not None:
        return value
    if fallback is not None:
        return fallback
    raise KeyError(
        f"Environment variable '{name}' is required but not set. "
        f"Set it or provide a default: ${{{name}:-default}}"
    )


def interpolate_env_vars(value: Any) -> Any:
    """Resolve ${...} references in every string of a parsed YAML tree.

    Raises KeyError for a reference with no fallback whose variable is unset.
    """
    if isinstance(value, str):
        return ENV_REFERENCE.sub(_env_lookup, value)
    if isinstance(value, dict):
        return {key: interpolate_env_vars(item) for key, item in value.items()}
    if isinstance(value, list):
        return [interpolate_env_vars(item) for item in value]
    return value


def load_config_from_file(
    config_path: Union[str, Path],
    interpolate: bool = True
) -> AppConfig:
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    logger.info(f"Loading configuration from {config_path}")
    with open(config_path, 'r') as f:
        raw = yaml.safe_load(f) or {}

    if interpolate:
        try:
            raw = interpolate_env_vars(raw)
        except KeyError as e:
            logger.error(f"Configuration error: {e}")
            raise

    return AppConfig.from_dict(raw)


def config_search_paths(working_dir: Optional[Union[str, Path]] = None) -> List[Path]:
    """Candidate pairing.yaml locations, most specific first."""
    roots = [Path(working_dir)] if working_dir else []
    roots.append(Path.cwd())
    return [path for root in roots for path in (root / CONFIG_FILENAME, root / "config" / CONFIG_FILENAME)]


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    working_dir: Optional[Union[str, Path]] = None,
) -> AppConfig:
    """
    Load the explicit file if given, else the first pairing.yaml found by
    config_search_paths(), else built-in defaults.
    """
    if config_path:
        return load_config_from_file(config_path)

    for path in config_search_paths(working_dir):
        if path.exists():
            logger.info(f"Found configuration at {path}")
            return load_config_from_file(path)

    logger.info(f"No {CONFIG_FILENAME} found, using default configuration")
    return AppConfig()


def create_default_config(output_path: Optional[Union[str, Path]] = None) -> Path:
    """Write the starter pairing.yaml used by `waha-pair --init-config`."""
    output_path = Path(output_path) if output_path else Path(CONFIG_FILENAME)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(DEFAULT_CONFIG_TEMPLATE)

    logger.info(f"Created default configuration at {output_path}")
    return output_path
