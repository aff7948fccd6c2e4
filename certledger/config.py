"""
Configuration management for CertLedger

Loads settings from:
1. config/config.yaml (optional)
2. Environment variables (.env), prefixed ``CERTLEDGER_``
3. Default values

The original deployment's bare variable names (``RPC_URL``,
``REGISTRY_ADDRESS``, ``PINATA_JWT`` ...) are accepted as aliases.
"""

from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Load environment variables
load_dotenv()


def _env(name: str, *legacy: str) -> AliasChoices:
    return AliasChoices(f"CERTLEDGER_{name.upper()}", *legacy)


class Config(BaseSettings):
    """CertLedger configuration settings"""

    model_config = SettingsConfigDict(
        env_prefix="CERTLEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # --- Ledger ---
    rpc_url: str = Field(default="", validation_alias=_env("rpc_url", "RPC_URL"))
    registry_address: str = Field(
        default="", validation_alias=_env("registry_address", "REGISTRY_ADDRESS")
    )
    probe_timeout_seconds: float = 5.0

    # --- Record store (Neo4j) ---
    neo4j_uri: str = Field(default="")
    neo4j_user: str = Field(default="neo4j")
    neo4j_password: str = Field(default="")
    neo4j_database: str = Field(default="neo4j")

    # --- Pinning (Pinata / IPFS) ---
    pinata_jwt: str = Field(default="", validation_alias=_env("pinata_jwt", "PINATA_JWT"))
    pinata_project_id: str = Field(
        default="", validation_alias=_env("pinata_project_id", "IPFS_PROJECT_ID")
    )
    pinata_project_secret: str = Field(
        default="", validation_alias=_env("pinata_project_secret", "IPFS_PROJECT_SECRET")
    )
    pinata_base_url: str = "https://api.pinata.cloud"
    pinata_timeout: float = 30.0
    pinata_max_retries: int = 3

    # --- Auth ---
    jwt_secret: str = Field(default="dev", validation_alias=_env("jwt_secret", "JWT_SECRET"))
    jwt_algorithm: str = "HS256"
    jwt_expires_hours: int = 24

    # --- API ---
    api_host: str = "0.0.0.0"
    api_port: int = 4000
    cors_origins: str = "http://localhost:5173"  # Comma-separated string
    max_upload_bytes: int = 10 * 1024 * 1024
    candidate_limit: int = 25

    # --- Feature flags ---
    demo_mode: bool = False

    # --- Logging ---
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def ledger_configured(self) -> bool:
        return bool(self.rpc_url and self.registry_address)

    @property
    def neo4j_configured(self) -> bool:
        return bool(self.neo4j_uri and self.neo4j_password)

    @property
    def pinata_configured(self) -> bool:
        return bool(self.pinata_jwt or (self.pinata_project_id and self.pinata_project_secret))

    @classmethod
    def from_yaml(cls, yaml_path: str | Path = "config/config.yaml") -> "Config":
        """Load configuration from YAML file, falling back to env/defaults"""
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            return cls()

        with open(yaml_path) as f:
            config_data = yaml.safe_load(f) or {}

        return cls(**config_data)


# Global configuration instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create global configuration instance"""
    global _config
    if _config is None:
        _config = Config.from_yaml()
    return _config


def reload_config(yaml_path: Optional[str | Path] = None) -> Config:
    """Reload configuration from file"""
    global _config
    _config = Config.from_yaml(yaml_path) if yaml_path else Config.from_yaml()
    return _config
