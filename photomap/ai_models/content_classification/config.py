"""Configuration for the content classification model"""

from pydantic import BaseModel, Field

from photomap.config import settings


class ClassificationModelConfig(BaseModel):
    """Configuration for the MobileNet-style content classifier"""
    model_config = {"protected_namespaces": ()}

    model_path: str = Field(
        default=settings.classification_model_path,
        description="Path to classifier weights",
    )
    model_version: str = Field(default=settings.classification_model_version)
    input_size: int = Field(
        default=settings.classification_input_size, ge=32, le=1024,
        description="Model input size (square)",
    )
    top_k: int = Field(default=settings.classification_top_k, ge=1, le=100)
    temperature: float = Field(default=4.0, gt=0.0, description="Softmax sharpening factor")
    weight_seed: int = Field(default=20240601, description="Seed for the mock weight matrix")
