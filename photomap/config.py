"""Application configuration using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    environment: str = "development"

    # Logging
    log_level: str = "INFO"

    # Classification model
    classification_top_k: int = 5
    classification_model_path: str = "models/mobilenet_v2.npz"
    classification_model_version: str = "mobilenet-v2-mock-1.0.0"
    classification_input_size: int = 224

    # Map view
    default_map_center_lat: float = 51.505
    default_map_center_lng: float = -0.09

    # Intake
    accepted_mime_prefix: str = "image/"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def default_map_center(self) -> tuple[float, float]:
        """Map center used when no photo carries a location"""
        return (self.default_map_center_lat, self.default_map_center_lng)


# Global settings instance
settings = Settings()
