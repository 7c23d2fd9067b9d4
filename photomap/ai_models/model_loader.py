"""Process-wide ownership of the classification model"""

import logging
from typing import Optional
from enum import Enum

from .classification_model import ClassificationModel
from .content_classification import ClassificationModelConfig

logger = logging.getLogger(__name__)


class ModelType(str, Enum):
    """Supported model types"""
    CONTENT_CLASSIFICATION = "content_classification"


class ModelLoader:
    """
    Singleton owning the shared model services.

    Every classification stage that is not handed a model explicitly
    receives the same ClassificationModel, so the weights are loaded once
    per process.
    """

    _instance: Optional["ModelLoader"] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(ModelLoader, cls).__new__(cls)
            cls._instance._models = {}
            logger.info("Initialized ModelLoader singleton")
        return cls._instance

    def get_classification_model(
        self, config: Optional[ClassificationModelConfig] = None
    ) -> ClassificationModel:
        """
        Get or create the shared classification model.

        Args:
            config: Optional configuration, only used on first creation

        Returns:
            ClassificationModel that loads its weights lazily on first use
        """
        model = self._models.get(ModelType.CONTENT_CLASSIFICATION)
        if model is None:
            logger.info("Creating shared ClassificationModel instance")
            model = ClassificationModel(config=config)
            self._models[ModelType.CONTENT_CLASSIFICATION] = model
        return model


# Global model loader instance
model_loader = ModelLoader()
