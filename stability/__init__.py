"""
Stability API client

Usage:
    from stability import StabilityClient, GenerationRequest
    with StabilityClient(api_key) as client:
        image = client.generate_sd3(GenerationRequest(prompt="a bear riding a unicycle"))
"""

__version__ = "0.3.0"

from .clients import AsyncStabilityClient, StabilityClient
from .exceptions import RemoteError, StabilityError, TransportError, ValidationError
from .models import AspectRatio, GenerationRequest, OutputFormat, SD3Model, UltraRequest

__all__ = [
    'StabilityClient', 'AsyncStabilityClient',
    'AspectRatio', 'GenerationRequest', 'OutputFormat', 'SD3Model', 'UltraRequest',
    'StabilityError', 'ValidationError', 'TransportError', 'RemoteError',
]
