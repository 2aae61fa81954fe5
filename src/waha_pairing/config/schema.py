"""
WAHA Pairing Configuration Schema

Defines the configuration structure for the pairing client.
All configuration can be specified via pairing.yaml (with environment
variable interpolation) or programmatically.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


class ConfigError(ValueError):
    """Raised when configuration is invalid"""


@dataclass
class GatewayConfig:
    """Configuration for the WAHA gateway connection"""
    base_url: str = "http://localhost:3000"
    api_key: str = ""
    api_prefix: str = "/api"
    timeout: float = 30.0
    retry_attempts: int = 3
    retry_delay: float = 1.0  # seconds, multiplied by attempt number

    # Session options sent on create
    webhook_url: str = ""
    webhook_events: List[str] = field(default_factory=lambda: ["message", "session.status"])
    reject_calls: bool = False
    mark_online_on_chat: bool = True

    # Use canned responses instead of a real gateway
    mock_responses: bool = False


@dataclass
class PairingConfig:
    """Timing and naming for the QR pairing flow"""
    session_prefix: str = "whatsapp-connector"
    qr_window_seconds: int = 120
    poll_interval: float = 3.0
    tick_interval: float = 1.0
    connected_delay: float = 2.0  # cosmetic pause before naming
    startup_delay: float = 2.0    # wait after session start before fetching QR
    pairing_timeout: Optional[float] = None  # overall limit while scanning; None = off


@dataclass
class UIConfig:
    """Configuration for the pairing front end"""
    mode: str = "terminal"  # "terminal" or "web"
    web_host: str = "0.0.0.0"
    web_port: int = 8200


@dataclass
class LoggingConfig:
    level: str = "INFO"


@dataclass
class AppConfig:
    """
    Central configuration for the pairing client.

    Example pairing.yaml:
    ```yaml
    gateway:
      base_url: "${WAHA_BASE_URL:-http://localhost:3000}"
      api_key: "${WAHA_API_KEY:-}"

    pairing:
      qr_window_seconds: 120
      poll_interval: 3

    ui:
      mode: terminal
    ```
    """
    gateway: GatewayConfig = field(default_factory=GatewayConfig)
    pairing: PairingConfig = field(default_factory=PairingConfig)
    ui: UIConfig = field(default_factory=UIConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Additional metadata
    metadata: Dict[str, Any] = field(default_factory=dict)

    def validate(self) -> tuple[bool, list[str]]:
        """
        Validate configuration.

        Returns:
            (is_valid, error_messages)
        """
        errors = []

        if not self.gateway.base_url:
            errors.append("gateway.base_url is required")

        if self.gateway.timeout <= 0:
            errors.append("gateway.timeout must be positive")

        if self.gateway.retry_attempts < 1:
            errors.append("gateway.retry_attempts must be at least 1")

        if self.gateway.retry_delay < 0:
            errors.append("gateway.retry_delay must not be negative")

        if self.pairing.qr_window_seconds < 1:
            errors.append("pairing.qr_window_seconds must be at least 1")

        for name in ("poll_interval", "tick_interval"):
            if getattr(self.pairing, name) <= 0:
                errors.append(f"pairing.{name} must be positive")

        for name in ("connected_delay", "startup_delay"):
            if getattr(self.pairing, name) < 0:
                errors.append(f"pairing.{name} must not be negative")

        if self.pairing.pairing_timeout is not None and self.pairing.pairing_timeout <= 0:
            errors.append("pairing.pairing_timeout must be positive when set")

        if not self.pairing.session_prefix:
            errors.append("pairing.session_prefix is required")

        if self.ui.mode not in ("terminal", "web"):
            errors.append(f"Invalid ui.mode '{self.ui.mode}': must be 'terminal' or 'web'")

        return (len(errors) == 0, errors)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AppConfig":
        """Create AppConfig from dictionary (e.g., parsed YAML)"""
        gateway_data = data.get("gateway") or {}
        gateway_config = GatewayConfig(
            base_url=gateway_data.get("base_url", "http://localhost:3000"),
            api_key=gateway_data.get("api_key") or "",
            api_prefix=gateway_data.get("api_prefix", "/api"),
            timeout=float(gateway_data.get("timeout", 30.0)),
            retry_attempts=int(gateway_data.get("retry_attempts", 3)),
            retry_delay=float(gateway_data.get("retry_delay", 1.0)),
            webhook_url=gateway_data.get("webhook_url") or "",
            webhook_events=list(gateway_data.get("webhook_events", ["message", "session.status"])),
            reject_calls=_as_bool(gateway_data.get("reject_calls", False)),
            mark_online_on_chat=_as_bool(gateway_data.get("mark_online_on_chat", True)),
            mock_responses=_as_bool(gateway_data.get("mock_responses", False)),
        )

        pairing_data = data.get("pairing") or {}
        pairing_timeout = pairing_data.get("pairing_timeout")
        pairing_config = PairingConfig(
            session_prefix=pairing_data.get("session_prefix", "whatsapp-connector"),
            qr_window_seconds=int(pairing_data.get("qr_window_seconds", 120)),
            poll_interval=float(pairing_data.get("poll_interval", 3.0)),
            tick_interval=float(pairing_data.get("tick_interval", 1.0)),
            connected_delay=float(pairing_data.get("connected_delay", 2.0)),
            startup_delay=float(pairing_data.get("startup_delay", 2.0)),
            pairing_timeout=float(pairing_timeout) if pairing_timeout not in (None, "") else None,
        )

        ui_data = data.get("ui") or {}
        ui_config = UIConfig(
            mode=ui_data.get("mode", "terminal"),
            web_host=ui_data.get("web_host", "0.0.0.0"),
            web_port=int(ui_data.get("web_port", 8200)),
        )

        logging_data = data.get("logging") or {}
        logging_config = LoggingConfig(
            level=str(logging_data.get("level", "INFO")).upper(),
        )

        return cls(
            gateway=gateway_config,
            pairing=pairing_config,
            ui=ui_config,
            logging=logging_config,
            metadata=data.get("metadata", {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary (for serialization)"""
        return {
            "gateway": {
                "base_url": self.gateway.base_url,
                "api_key": self.gateway.api_key,
                "api_prefix": self.gateway.api_prefix,
                "timeout": self.gateway.timeout,
                "retry_attempts": self.gateway.retry_attempts,
                "retry_delay": self.gateway.retry_delay,
                "webhook_url": self.gateway.webhook_url,
                "webhook_events": list(self.gateway.webhook_events),
                "reject_calls": self.gateway.reject_calls,
                "mark_online_on_chat": self.gateway.mark_online_on_chat,
                "mock_responses": self.gateway.mock_responses,
            },
            "pairing": {
                "session_prefix": self.pairing.session_prefix,
                "qr_window_seconds": self.pairing.qr_window_seconds,
                "poll_interval": self.pairing.poll_interval,
                "tick_interval": self.pairing.tick_interval,
                "connected_delay": self.pairing.connected_delay,
                "startup_delay": self.pairing.startup_delay,
                "pairing_timeout": self.pairing.pairing_timeout,
            },
            "ui": {
                "mode": self.ui.mode,
                "web_host": self.ui.web_host,
                "web_port": self.ui.web_port,
            },
            "logging": {
                "level": self.logging.level,
            },
            "metadata": self.metadata,
        }


def _as_bool(value: Any) -> bool:
    """Interpolated env values arrive as strings"""
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)
