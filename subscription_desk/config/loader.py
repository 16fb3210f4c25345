"""
Configuration management and loading.

Handles gateway and ledger settings from a YAML file.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict

import yaml

DEFAULT_BASE_URL = "https://everydaynewsbackend.onrender.com/api"


@dataclass(frozen=True)
class GatewayConfig:
    """Remote gateway settings."""
    base_url: str = DEFAULT_BASE_URL
    timeout: float = 30.0
    
    def __post_init__(self):
        """Validate gateway values."""
        if not self.base_url or not self.base_url.strip():
            raise ValueError("base_url cannot be empty")
        if not self.base_url.startswith(("http://", "https://")):
            raise ValueError("base_url must start with http:// or https://")
        if self.timeout <= 0:
            raise ValueError("timeout must be > 0")


@dataclass(frozen=True)
class LedgerConfig:
    """Local payment ledger settings."""
    key: str = "payments"
    due_days: int = 30
    db_path: str = ".subscription-desk.db"
    
    def __post_init__(self):
        """Validate ledger values."""
        if not self.key or not self.key.strip():
            raise ValueError("ledger key cannot be empty")
        if self.due_days <= 0:
            raise ValueError("due_days must be > 0")
        if not self.db_path:
            raise ValueError("db_path cannot be empty")


@dataclass(frozen=True)
class AppConfig:
    """Complete application configuration."""
    gateway: GatewayConfig = field(default_factory=GatewayConfig)
    ledger: LedgerConfig = field(default_factory=LedgerConfig)


def default_config() -> AppConfig:
    """Configuration used when no file is given."""
    return AppConfig()


def load_config(path: str) -> AppConfig:
    """Load and validate configuration from a YAML file.
    
    Missing sections and keys take their defaults; unknown keys are
    errors so typos are not silently ignored.
    
    Args:
        path: Path to YAML configuration file
        
    Returns:
        Validated AppConfig object
        
    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    
    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")
    
    if not raw_config:
        raise ValueError("Configuration file is empty")
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a dictionary")
    
    allowed_top_keys = {'gateway', 'ledger'}
    unknown_keys = set(raw_config.keys()) - allowed_top_keys
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")
    
    gateway_data = _section(raw_config, 'gateway', {'base_url', 'timeout'})
    gateway = GatewayConfig(
        base_url=str(gateway_data.get('base_url', DEFAULT_BASE_URL)),
        timeout=_number(gateway_data, 'timeout', 30.0, 'gateway')
    )
    
    ledger_data = _section(raw_config, 'ledger', {'key', 'due_days', 'db_path'})
    due_days = ledger_data.get('due_days', 30)
    if not isinstance(due_days, int) or isinstance(due_days, bool):
        raise ValueError("'due_days' in ledger must be an integer")
    ledger = LedgerConfig(
        key=str(ledger_data.get('key', 'payments')),
        due_days=due_days,
        db_path=str(ledger_data.get('db_path', '.subscription-desk.db'))
    )
    
    return AppConfig(gateway=gateway, ledger=ledger)


def _section(raw_config: Dict, name: str, allowed_keys: set) -> Dict:
    """Return a validated config section, or {} if absent.
    
    Raises:
        ValueError: If the section is not a dictionary or has unknown keys
    """
    data = raw_config.get(name)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"'{name}' must be a dictionary")
    
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown {name} keys: {unknown_keys}")
    return data


def _number(data: Dict, key: str, default: float, path: str) -> float:
    value = data.get(key, default)
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        raise ValueError(f"'{key}' in {path} must be a number")
    return float(value)
