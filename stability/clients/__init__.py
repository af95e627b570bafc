from .client import StabilityClient
from .async_client import AsyncStabilityClient

__all__ = ['StabilityClient', 'AsyncStabilityClient']
