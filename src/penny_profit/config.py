"""
Configuration Management for Penny Profit
Pydantic Settings-based configuration with environment variable overrides.

Loading Priority (highest to lowest):
1. Environment Variables (via .env file and OS env)
2. YAML Configuration Files (configs/*.yaml)
3. Defaults defined on the schema

Environment Variable Mapping:
- Section fields: SECTION_FIELD_NAME, e.g. SERVER_PORT -> server.port, LLM_MODEL_NAME -> llm.model_name
- Short deployment names: PORT, HOST, OPENAI_API_KEY,
  CALCULATOR_API_URL, HISTORY_PATH
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from loguru import logger
from pydantic import BaseModel, Field, SecretStr, ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from penny_profit import __version__

# Load environment variables from .env file
load_dotenv()


# --- 1. Modular Schema Definitions ---


class SystemConfig(BaseModel):
    """Schema for system-level configuration."""
    debug_mode: bool = False
    version: str = __version__
    log_dir: str = "logs"


class ServerConfig(BaseModel):
    """Schema for the HTTP server."""
    host: str = "0.0.0.0"
    port: int = 7778


class LLMConfig(BaseModel):
    """Schema for the chat assistant's completion service."""
    model_name: str = "gpt-3.5-turbo"
    api_key: Optional[SecretStr] = None
    api_base: Optional[str] = None
    max_tokens: int = 300
    temperature: float = 0.7
    timeout: Optional[float] = None


class StorageConfig(BaseModel):
    """Schema for the client's local store."""
    path: str = "data/local_store.json"
    max_history: int = Field(default=10, ge=1, le=10)


class ClientConfig(BaseModel):
    """Schema for the interactive client talking to the HTTP server."""
    api_url: str = "http://localhost:7778"
    timeout: float = 10.0
    offline: bool = False


# --- 2. Main Configuration Class ---


class CalculatorSettings(BaseSettings):
    """
    Pydantic Settings class that holds the merged YAML + ENV configuration.
    Values are normally supplied by load_config(); constructing it directly gives defaults.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    system: SystemConfig = Field(default_factory=SystemConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    client: ClientConfig = Field(default_factory=ClientConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """
        Only explicit init values are used. ENV overrides are merged beforehand
        by _merge_yaml_with_env so section fields can be set one at a time.
        """
        return (init_settings,)


# Section name -> schema, used to validate ENV override targets
_SECTIONS: Dict[str, type[BaseModel]] = {
    "system": SystemConfig,
    "server": ServerConfig,
    "llm": LLMConfig,
    "storage": StorageConfig,
    "client": ClientConfig,
}

# ENV name -> (section, field, convert type)
_SPECIAL_CASES = {
    "PORT": ("server", "port", True),
    "HOST": ("server", "host", False),
    "OPENAI_API_KEY": ("llm", "api_key", False),
    "CALCULATOR_API_URL": ("client", "api_url", False),
    "HISTORY_PATH": ("storage", "path", False),
}


# --- 3. Configuration Loader with YAML + ENV Merging ---


def _load_yaml_config(yaml_path: Path) -> Dict[str, Any]:
    """Load and return YAML configuration as dictionary."""
    if not yaml_path.exists():
        logger.warning(f"Config file not found: {yaml_path}")
        return {}

    try:
        with open(yaml_path, "r") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Failed to load {yaml_path}: {e}")
        return {}

    if not isinstance(data, dict):
        logger.error(f"Ignoring {yaml_path}: top level must be a mapping")
        return {}
    return data


def _merge_yaml_with_env(yaml_data: Dict[str, Any], environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """
    Merge YAML data with environment variables.
    ENV variables take precedence over YAML values.

    Supported ENV variable formats:
    - SERVER_PORT -> server.port
    - LLM_MODEL_NAME -> llm.model_name
    - STORAGE_MAX_HISTORY -> storage.max_history
    - PORT, HOST, OPENAI_API_KEY, CALCULATOR_API_URL, HISTORY_PATH (special cases)
    """
    if environ is None:
        environ = dict(os.environ)
    env_vars = {k: v for k, v in environ.items() if k.isupper()}

    result = {key: (dict(value) if isinstance(value, dict) else value) for key, value in yaml_data.items()}

    def _set(section: str, field: str, value: Any) -> None:
        current = result.get(section)
        if not isinstance(current, dict):
            current = {}
            result[section] = current
        current[field] = value

    for env_key, (section, field, convert) in _SPECIAL_CASES.items():
        if env_key in env_vars and env_vars[env_key] != "":
            env_value = env_vars[env_key]
            _set(section, field, _convert_env_value(env_value) if convert else env_value)
            logger.debug(f"ENV override (special): {env_key} -> {section}.{field}")

    for env_key, env_value in env_vars.items():
        if env_key in _SPECIAL_CASES:
            continue

        parts = env_key.lower().split("_", 1)
        if len(parts) < 2 or parts[0] not in _SECTIONS:
            continue

        section, field = parts
        if field not in _SECTIONS[section].model_fields:
            continue

        # Secrets and free text are taken verbatim
        if field in ("api_key", "model_name", "api_base", "path", "api_url", "host", "version", "log_dir"):
            _set(section, field, env_value)
        else:
            _set(section, field, _convert_env_value(env_value))
        logger.debug(f"ENV override: {env_key} -> {section}.{field}")

    return result


def _convert_env_value(value: str) -> Any:
    """Convert string environment value to appropriate Python type."""
    # Boolean
    if value.lower() in ("true", "yes", "on"):
        return True
    if value.lower() in ("false", "no", "off"):
        return False

    # Integer
    try:
        return int(value)
    except ValueError:
        pass

    # Float
    try:
        return float(value)
    except ValueError:
        pass

    # Remove surrounding quotes if present
    if (value.startswith('"') and value.endswith('"')) or \
       (value.startswith("'") and value.endswith("'")):
        return value[1:-1]

    return value


def _deep_merge(base: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge dictionary 'update' into 'base'."""
    result = base.copy()

    for key, value in update.items():
        if isinstance(value, dict) and key in result and isinstance(result[key], dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


class Config:
    """Singleton configuration manager."""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(Config, cls).__new__(cls)
            cls._instance._config = load_config()
        return cls._instance

    @staticmethod
    def get_instance():
        """Get the singleton configuration instance."""
        if Config._instance is None:
            Config._instance = Config()
        return Config._instance

    @staticmethod
    def reset() -> None:
        """Drop the cached configuration so the next get_config() reloads it."""
        Config._instance = None

    def load(self) -> CalculatorSettings:
        """Load and return the configuration."""
        return self._config


def load_config(config_dir: Optional[Path | str] = None, environ: Optional[Dict[str, str]] = None) -> CalculatorSettings:
    """
    Load configuration from YAML files and merge with environment variables.

    Args:
        config_dir: Optional path to configuration directory. Defaults to 'configs/'.
        environ: Environment mapping to read overrides from. Defaults to os.environ.

    Returns:
        CalculatorSettings: Loaded configuration object. Never raises; invalid
        configuration falls back to defaults.
    """
    # 1. Resolve Directory
    if config_dir is None:
        candidates = [
            Path.cwd() / "configs",
            Path(__file__).parent.parent.parent / "configs",
        ]
        config_dir = next((p for p in candidates if p.exists()), None)

    master_data: Dict[str, Any] = {}

    if not config_dir:
        logger.warning("Config directory 'configs/' not found. Using defaults.")
    else:
        config_dir = Path(config_dir)
        logger.info(f"Loading configuration from: {config_dir}")

        # 2. Scan for YAML and merge all files
        yaml_files = sorted(list(config_dir.glob("*.yaml")) + list(config_dir.glob("*.yml")))
        if not yaml_files:
            logger.warning(f"No YAML files found in {config_dir}. Using defaults.")

        for file_path in yaml_files:
            file_data = _load_yaml_config(file_path)
            if not file_data:
                continue
            logger.debug(f"Loaded {file_path.name} -> Keys: {list(file_data.keys())}")
            master_data = _deep_merge(master_data, file_data)

    # 3. Merge YAML with ENV overrides
    merged_data = _merge_yaml_with_env(master_data, environ)

    # 4. Create Pydantic Settings Object
    try:
        logger.debug(f"Final configuration sections: {sorted(merged_data.keys())}")
        return CalculatorSettings(**merged_data)
    except ValidationError as e:
        fields = [".".join(str(part) for part in err["loc"]) for err in e.errors()]
        logger.error(f"Configuration Validation Error in {fields}, using defaults")
        return CalculatorSettings()


# Convenience function for direct access
def get_config() -> CalculatorSettings:
    """Get the singleton configuration instance."""
    return Config.get_instance().load()
