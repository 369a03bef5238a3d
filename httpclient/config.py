"""
load the client config from config.yaml and the environment
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .request import AuthenticationMethod

DEFAULT_USER_AGENT = 'httpclient/0.1'


class ClientConfiguration(BaseModel):
    """Defaults applied by the client to every request it creates."""

    model_config = ConfigDict(validate_assignment=True, extra='ignore')

    authentication_method: AuthenticationMethod = AuthenticationMethod.BASIC
    username: Optional[str] = None
    password: Optional[str] = None
    proxy: Optional[str] = None
    timeout: float = Field(default=10, gt=0)
    user_agent: str = DEFAULT_USER_AGENT
    follow_location: bool = False
    force_ipv4: bool = False
    verify: bool = True
    strict_cookie_domains: bool = True

    @field_validator('authentication_method', mode='before')
    @classmethod
    def _parse_authentication_method(cls, value):
        return AuthenticationMethod.parse(value)

    @field_validator('username', 'password', 'proxy', mode='before')
    @classmethod
    def _as_string(cls, value):
        # environment values like a numeric password arrive converted
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @field_validator('user_agent', mode='before')
    @classmethod
    def _default_user_agent(cls, value):
        return str(value) if value else DEFAULT_USER_AGENT


class Config:
    """Configuration loader that reads from config.yaml and environment variables."""

    def __init__(self, config_path: str = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to config.yaml file. If None, looks for config.yaml
                        in the same directory as this module.
        """
        if config_path is None:
            config_path = Path(__file__).parent / "config.yaml"

        self.config_path = Path(config_path)
        self._config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file and override with environment variables."""
        try:
            with open(self.config_path, 'r') as f:
                config = yaml.safe_load(f) or {}
        except FileNotFoundError:
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}")

        if not isinstance(config, dict):
            raise ValueError(f"Invalid configuration file: {self.config_path} does not hold a mapping")

        return self._apply_env_overrides(config)

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides to configuration."""
        env_mappings = {
            'HTTPCLIENT_USER_AGENT': ('client', 'user_agent'),
            'HTTPCLIENT_TIMEOUT': ('client', 'timeout'),
            'HTTPCLIENT_PROXY': ('client', 'proxy'),
            'HTTPCLIENT_FOLLOW_LOCATION': ('client', 'follow_location'),
            'HTTPCLIENT_FORCE_IPV4': ('client', 'force_ipv4'),
            'HTTPCLIENT_VERIFY': ('client', 'verify'),
            'HTTPCLIENT_USERNAME': ('client', 'username'),
            'HTTPCLIENT_PASSWORD': ('client', 'password'),
            'HTTPCLIENT_AUTHENTICATION_METHOD': ('client', 'authentication_method'),
            'LOG_LEVEL': ('logging', 'level'),
            'LOG_FORMAT': ('logging', 'format'),
        }

        for env_var, config_path in env_mappings.items():
            env_value = os.getenv(env_var)
            if env_value is not None:
                current = config
                for key in config_path[:-1]:
                    if not isinstance(current.get(key), dict):
                        current[key] = {}
                    current = current[key]

                current[config_path[-1]] = self._convert_env_value(env_value)

        return config

    def _convert_env_value(self, value: str):
        """Convert environment variable string to appropriate Python type."""
        if value.lower() in ('true', 'false'):
            return value.lower() == 'true'

        try:
            return int(value)
        except ValueError:
            pass

        try:
            return float(value)
        except ValueError:
            pass

        return value

    @property
    def client(self) -> Dict[str, Any]:
        """Get HTTP client configuration."""
        return self._config.get('client') or {}

    @property
    def logging(self) -> Dict[str, Any]:
        """Get logging configuration."""
        return self._config.get('logging') or {}

    def client_configuration(self) -> ClientConfiguration:
        """Build the validated client configuration."""
        try:
            return ClientConfiguration(**self.client)
        except ValidationError as e:
            raise ValueError(f"Invalid client configuration in {self.config_path}: {e}")
