"""Exception hierarchy for the photo processing pipeline"""


class PhotoPipelineError(Exception):
    """Base exception for photo pipeline errors"""
    pass


class DecodeFailure(PhotoPipelineError):
    """Raised when image bytes cannot be decoded"""
    pass


class MetadataDecodeError(DecodeFailure):
    """Raised when embedded metadata cannot be read from an image"""
    pass


class ImageDecodeError(DecodeFailure):
    """Raised when an image cannot be decoded into a pixel buffer"""
    pass


class ModelLoadFailure(PhotoPipelineError):
    """Raised when the classification model fails to load"""
    pass


class ModelUnavailableError(ModelLoadFailure):
    """Raised when classification is requested without a ready model"""
    pass


class InferenceFailure(PhotoPipelineError):
    """Raised when a classify call fails on a ready model"""
    pass


class InferenceError(InferenceFailure):
    """Raised when the model runtime errors during inference"""
    pass


class UnknownPhotoError(PhotoPipelineError):
    """Raised when an operation references a removed or never-created photo"""

    def __init__(self, photo_id):
        self.photo_id = photo_id
        super().__init__(f"Unknown photo id: {photo_id}")
