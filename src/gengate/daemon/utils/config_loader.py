import yaml
import os
from pathlib import Path
from pydantic import BaseModel, Field
from typing import Optional
from .logging_config import StructuredLogger

logger = StructuredLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0

# --- Schema Models ---

class GeneratorConfig(BaseModel):
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    model: str = "gemini-2.5-flash-image"
    api_key_env: str = "GEMINI_API_KEY"

    def resolve_api_key(self) -> str:
        return (os.getenv(self.api_key_env) or "").strip()

class MeteringConfig(BaseModel):
    debit_amount: int = Field(1, ge=1)
    timeout_seconds: float = Field(DEFAULT_TIMEOUT_SECONDS, gt=0)
    dedup_retention_hours: Optional[int] = Field(None, ge=1)

class GatewayConfig(BaseModel):
    version: int = Field(1, ge=1, le=1)
    generator: GeneratorConfig = Field(default_factory=GeneratorConfig)
    metering: MeteringConfig = Field(default_factory=MeteringConfig)

# --- Config Loader (Atomic Reload) ---

def _default_config_file() -> Path:
    explicit = (os.getenv("GENGATE_CONFIG_FILE") or "").strip()
    if explicit:
        return Path(explicit)
    config_dir = Path(os.getenv("GENGATE_CONFIG_DIR", str(Path.home() / ".gengate" / "config")))
    return config_dir / "gateway.yaml"

class ConfigLoader:
    def __init__(self, config_file: Optional[Path] = None):
        self.config_file = config_file or _default_config_file()
        self.config: Optional[GatewayConfig] = None

    def load_config(self) -> GatewayConfig:
        """
        Loads and validates configuration from gateway.yaml.
        ATOMIC: On failure, previous config is preserved.
        A missing file means built-in defaults.
        """
        if not self.config_file.exists():
            logger.info("Config file not found, using defaults", path=str(self.config_file))
            self.config = GatewayConfig()
            return self.config

        try:
            with open(self.config_file, "r") as f:
                raw_data = yaml.safe_load(f) or {}

            logger.info("Loading configuration", path=str(self.config_file))

            # Validate into temporary, never touch self.config until success
            new_config = GatewayConfig(**raw_data)

            self.config = new_config

            logger.info("Configuration loaded successfully",
                        version=self.config.version,
                        model=self.config.generator.model,
                        timeout_seconds=self.config.metering.timeout_seconds)
            return self.config

        except Exception as e:
            logger.error("Configuration validation failed", error=str(e))
            if self.config is not None:
                logger.warning("Keeping previous valid configuration")
                raise ValueError(f"Invalid configuration (previous config retained): {e}")
            else:
                logger.critical("No previous configuration to fall back to")
                raise ValueError(f"Invalid configuration (no fallback): {e}")

    def get(self) -> GatewayConfig:
        if not self.config:
            self.load_config()
        return self.config

    @property
    def generator(self) -> GeneratorConfig:
        return self.get().generator

    @property
    def metering(self) -> MeteringConfig:
        return self.get().metering

config_loader = ConfigLoader()
