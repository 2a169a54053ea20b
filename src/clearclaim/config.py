"""Configuration management for ClearClaim."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .exceptions import ConfigurationError
from .utils.logging import DEFAULT_FORMAT, setup_logging

DEFAULT_CONFIG_FILE = "clearclaim.yaml"


@dataclass
class DigitizationConfig:
    """Digitization service endpoint."""
    api_url: str = ""
    api_key: str = ""
    timeout: float = 60.0
    confidence_threshold: float = 0.7


@dataclass
class MatchingConfig:
    """Chat-completion settings for line-item matching."""
    api_key: str = ""
    model: str = "gpt-4o-mini"
    temperature: float = 0.1
    max_tokens: int = 4000
    azure_api_key: str = ""
    azure_endpoint: str = ""
    azure_api_version: str = "2024-06-01"
    azure_deployment: str = ""

    @property
    def use_azure(self) -> bool:
        return bool(self.azure_api_key and self.azure_endpoint)


@dataclass
class ProcessingConfig:
    """Claim pipeline options."""
    detect_fraud: bool = True
    procedures: list[str] = field(default_factory=list)


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    format: str = DEFAULT_FORMAT
    file: str | None = None


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def _env(name: str, default: Any) -> Any:
    value = os.getenv(name)
    return default if value is None or value == "" else value


@dataclass
class Settings:
    """Main configuration class."""
    environment: str = "development"
    digitization: DigitizationConfig = field(default_factory=DigitizationConfig)
    matching: MatchingConfig = field(default_factory=MatchingConfig)
    processing: ProcessingConfig = field(default_factory=ProcessingConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @classmethod
    def load(cls, config_path: str | Path | None = None) -> "Settings":
        """
        Load configuration from file and environment variables.

        Environment variables (also read from a ``.env`` file) override
        config file values:
        - DIGITIZATION_API_URL, DIGITIZATION_API_KEY, DIGITIZATION_TIMEOUT,
          DIGITIZATION_CONFIDENCE_THRESHOLD
        - OPENAI_API_KEY, OPENAI_MODEL, MATCHING_TEMPERATURE, MATCHING_MAX_TOKENS
        - AZURE_OPENAI_API_KEY, AZURE_OPENAI_ENDPOINT, AZURE_OPENAI_API_VERSION,
          AZURE_OPENAI_DEPLOYMENT
        - DETECT_FRAUD, LOG_LEVEL, LOG_FILE, CLEARCLAIM_ENV

        Args:
            config_path: YAML file; defaults to ``clearclaim.yaml`` when present

        Returns:
            Settings instance with loaded values

        Raises:
            ConfigurationError: On an unreadable file or, in production, a
                missing digitization endpoint
        """
        load_dotenv()

        config_data: dict[str, Any] = {}
        path = Path(config_path) if config_path else Path(DEFAULT_CONFIG_FILE)
        if path.exists():
            try:
                with open(path, encoding="utf-8") as f:
                    config_data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid config file {path}: {e}") from e
        elif config_path:
            raise ConfigurationError(f"Config file not found: {path}")

        dig = config_data.get("digitization", {}) or {}
        match = config_data.get("matching", {}) or {}
        azure = match.get("azure", {}) or {}
        proc = config_data.get("processing", {}) or {}
        log = config_data.get("logging", {}) or {}
        defaults = MatchingConfig()

        try:
            digitization = DigitizationConfig(
                api_url=_env("DIGITIZATION_API_URL", dig.get("api_url", "")),
                api_key=_env("DIGITIZATION_API_KEY", dig.get("api_key", "")),
                timeout=float(_env("DIGITIZATION_TIMEOUT", dig.get("timeout", 60.0))),
                confidence_threshold=float(
                    _env(
                        "DIGITIZATION_CONFIDENCE_THRESHOLD",
                        dig.get("confidence_threshold", 0.7),
                    )
                ),
            )
            matching = MatchingConfig(
                api_key=_env("OPENAI_API_KEY", match.get("api_key", "")),
                model=_env("OPENAI_MODEL", match.get("model", defaults.model)),
                temperature=float(
                    _env("MATCHING_TEMPERATURE", match.get("temperature", defaults.temperature))
                ),
                max_tokens=int(
                    _env("MATCHING_MAX_TOKENS", match.get("max_tokens", defaults.max_tokens))
                ),
                azure_api_key=_env("AZURE_OPENAI_API_KEY", azure.get("api_key", "")),
                azure_endpoint=_env("AZURE_OPENAI_ENDPOINT", azure.get("endpoint", "")),
                azure_api_version=_env(
                    "AZURE_OPENAI_API_VERSION",
                    azure.get("api_version", defaults.azure_api_version),
                ),
                azure_deployment=_env("AZURE_OPENAI_DEPLOYMENT", azure.get("deployment", "")),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid numeric setting: {e}") from e

        processing = ProcessingConfig(
            detect_fraud=_as_bool(_env("DETECT_FRAUD", proc.get("detect_fraud", True))),
            procedures=list(proc.get("procedures", []) or []),
        )
        logging_config = LoggingConfig(
            level=_env("LOG_LEVEL", log.get("level", "INFO")),
            format=log.get("format", LoggingConfig.format),
            file=_env("LOG_FILE", log.get("file")),
        )

        settings = cls(
            environment=_env("CLEARCLAIM_ENV", config_data.get("environment", "development")),
            digitization=digitization,
            matching=matching,
            processing=processing,
            logging=logging_config,
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        """Production deployments must name the digitization endpoint."""
        if not self.is_production:
            return
        missing = [
            name
            for name, value in (
                ("DIGITIZATION_API_URL", self.digitization.api_url),
                ("DIGITIZATION_API_KEY", self.digitization.api_key),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}",
                details={"missing": missing},
            )

    def configure_logging(self) -> None:
        """Apply the logging section to the root logger."""
        setup_logging(self.logging.level, self.logging.format, self.logging.file)
