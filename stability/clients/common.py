"""Request preparation shared by the blocking and async clients"""
from typing import Dict, Tuple, Union

from stability.models import GenerationRequest, UltraRequest

ImageRequest = Union[GenerationRequest, UltraRequest]


def prepare_request(request: ImageRequest) -> Tuple[bytes, str]:
    """Validate the request and serialize it, returning (body, content type)"""
    request.validate_request()
    return request.to_form_data()


def build_headers(api_key: str, content_type: str) -> Dict[str, str]:
    return {
        "Content-Type": content_type,
        "Authorization": f"Bearer {api_key}",
        "Accept": "image/*",
    }
