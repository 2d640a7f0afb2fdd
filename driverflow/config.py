from __future__ import annotations

import os
from typing import Dict, Optional

import yaml
from pydantic import BaseModel, Field

from .constants import (
    DEFAULT_DATABASE_URL,
    DEFAULT_PROVIDER_TIMEOUT,
    DEFAULT_SUBJECTS_URL,
)


class ProviderConfig(BaseModel):
    """Static settings for one external provider API."""

    base_url: str
    api_key: Optional[str] = None
    timeout: float = DEFAULT_PROVIDER_TIMEOUT

    @property
    def configured(self) -> bool:
        return bool(self.api_key)


class StorageConfig(BaseModel):
    """Settings for the document storage bucket."""

    base_url: str = "https://storage.googleapis.com"
    bucket: Optional[str] = None
    access_token: Optional[str] = None
    timeout: float = DEFAULT_PROVIDER_TIMEOUT

    @property
    def configured(self) -> bool:
        return bool(self.bucket and self.access_token)


def _provider(url: str) -> ProviderConfig:
    return ProviderConfig(base_url=url)


class BackgroundCheckConfig(BaseModel):
    criminal: ProviderConfig = _provider("https://api.criminalcheck.com")
    driving: ProviderConfig = _provider("https://api.drivingrecord.com")
    employment: ProviderConfig = _provider("https://api.employmentverify.com")
    credit: ProviderConfig = _provider("https://api.creditcheck.com")
    enable_credit_check: bool = False


class InsuranceConfig(BaseModel):
    carriers: Dict[str, ProviderConfig] = Field(
        default_factory=lambda: {
            "progressive": _provider("https://api.progressive.com"),
            "geico": _provider("https://api.geico.com"),
            "statefarm": _provider("https://api.statefarm.com"),
            "allstate": _provider("https://api.allstate.com"),
        }
    )
    verisk: ProviderConfig = _provider("https://api.verisk.com")
    lexisnexis: ProviderConfig = _provider("https://api.lexisnexis.com")


class DriverflowConfig(BaseModel):
    """Top-level configuration model."""

    database_url: str = DEFAULT_DATABASE_URL
    subjects_url: str = DEFAULT_SUBJECTS_URL
    log_level: str = "INFO"
    background_check: BackgroundCheckConfig = BackgroundCheckConfig()
    insurance: InsuranceConfig = InsuranceConfig()
    payment: ProviderConfig = _provider("https://api.stripe.com")
    storage: StorageConfig = StorageConfig()


# Environment variable -> (section, provider) whose api_key / base_url it overrides
_KEY_ENV = {
    "CRIMINAL_CHECK": ("background_check", "criminal"),
    "DRIVING_RECORD": ("background_check", "driving"),
    "EMPLOYMENT_VERIFICATION": ("background_check", "employment"),
    "CREDIT_CHECK": ("background_check", "credit"),
    "VERISK": ("insurance", "verisk"),
    "LEXISNEXIS": ("insurance", "lexisnexis"),
}


def _apply_env(config: DriverflowConfig) -> None:
    for prefix, (section, name) in _KEY_ENV.items():
        provider: ProviderConfig = getattr(getattr(config, section), name)
        if os.getenv(f"{prefix}_API_KEY"):
            provider.api_key = os.getenv(f"{prefix}_API_KEY")
        if os.getenv(f"{prefix}_API_URL"):
            provider.base_url = os.getenv(f"{prefix}_API_URL")

    for carrier, provider in config.insurance.carriers.items():
        prefix = carrier.upper()
        if os.getenv(f"{prefix}_API_KEY"):
            provider.api_key = os.getenv(f"{prefix}_API_KEY")
        if os.getenv(f"{prefix}_API_URL"):
            provider.base_url = os.getenv(f"{prefix}_API_URL")

    if os.getenv("STRIPE_SECRET_KEY"):
        config.payment.api_key = os.getenv("STRIPE_SECRET_KEY")
    if os.getenv("FIREBASE_STORAGE_BUCKET"):
        config.storage.bucket = os.getenv("FIREBASE_STORAGE_BUCKET")
    if os.getenv("GCS_ACCESS_TOKEN"):
        config.storage.access_token = os.getenv("GCS_ACCESS_TOKEN")

    credit_flag = os.getenv("ENABLE_CREDIT_CHECK")
    if credit_flag is not None:
        config.background_check.enable_credit_check = credit_flag.lower() == "true"


def load_config(path: Optional[str] = None) -> DriverflowConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to DRIVERFLOW_CONFIG env
            variable or 'config.yaml' in the current directory.
    """

    config_path = path or os.getenv("DRIVERFLOW_CONFIG", "config.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = DriverflowConfig(**data)
    else:
        config = DriverflowConfig()

    env_db_url = os.getenv("DRIVERFLOW_DATABASE_URL") or os.getenv("DATABASE_URL")
    if env_db_url:
        config.database_url = env_db_url
    env_subjects_url = os.getenv("DRIVERFLOW_SUBJECTS_URL")
    if env_subjects_url:
        config.subjects_url = env_subjects_url
    _apply_env(config)
    return config
