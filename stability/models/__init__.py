from .fields import (
    ALL_OUTPUT_FORMATS,
    ALL_SD3_MODELS,
    DEFAULT_ASPECT_RATIO,
    MAX_PROMPT_LENGTH,
    VALID_ASPECT_RATIOS,
    AspectRatio,
    OutputFormat,
    SD3Model,
)
from .image_models import SD3_PATH, ULTRA_PATH, GenerationRequest, UltraRequest

__all__ = [
    'AspectRatio', 'OutputFormat', 'SD3Model', 'GenerationRequest', 'UltraRequest',
    'ALL_OUTPUT_FORMATS', 'ALL_SD3_MODELS', 'DEFAULT_ASPECT_RATIO', 'MAX_PROMPT_LENGTH',
    'VALID_ASPECT_RATIOS', 'SD3_PATH', 'ULTRA_PATH',
]
