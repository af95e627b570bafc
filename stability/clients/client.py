"""Blocking client for the Stability image generation API"""
from typing import BinaryIO, List, Optional

import requests

from config import STABILITY_API_BASE_URL, STABILITY_REQUEST_TIMEOUT
from stability.clients.common import ImageRequest, build_headers, prepare_request
from stability.exceptions import (
    RemoteError,
    RequestTimeoutError,
    StabilityError,
    TransportError,
)
from stability.models import SD3_PATH, ULTRA_PATH, GenerationRequest, UltraRequest

# Configure logging
from utils.logging_config import get_logger

logger = get_logger(__name__)

CHUNK_SIZE = 64 * 1024


class StabilityClient:
    """
    Client for Stability's Stable Diffusion API.

    Each client owns its requests.Session unless one is passed in. The API key
    and base URL are read-only after construction.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = STABILITY_API_BASE_URL,
        timeout: float = STABILITY_REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session if session is not None else requests.Session()
        self._owns_session = session is None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        if self._owns_session:
            self._session.close()

    def generate(
        self,
        path: str,
        request: ImageRequest,
        write_to: Optional[BinaryIO] = None,
    ) -> bytes:
        """
        Validate, serialize and POST a request, returning the image bytes.

        The request is sent at most once. When write_to is given the response
        body is also copied into it as it arrives.
        """
        body, content_type = prepare_request(request)
        url = f"{self.base_url}{path}"

        logger.debug(f"📤 Sending {len(body)} byte form to {url}")

        try:
            response = self._session.post(
                url,
                data=body,
                headers=build_headers(self.api_key, content_type),
                timeout=self.timeout,
                stream=True,
            )
        except requests.exceptions.Timeout as e:
            raise RequestTimeoutError(f"request to {url} timed out after {self.timeout}s") from e
        except requests.exceptions.RequestException as e:
            raise TransportError(f"failed to send request: {e}") from e

        with response:
            if response.status_code != 200:
                logger.error(f"Stability API returned {response.status_code} for {path}")
                try:
                    detail = response.text
                except requests.exceptions.Timeout as e:
                    raise RequestTimeoutError(f"timed out reading error response from {url}") from e
                except requests.exceptions.RequestException as e:
                    raise TransportError(f"failed to read error response: {e}") from e
                raise RemoteError(response.status_code, detail)

            chunks: List[bytes] = []
            try:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    chunks.append(chunk)
                    if write_to is not None:
                        write_to.write(chunk)
            except requests.exceptions.Timeout as e:
                raise RequestTimeoutError(f"timed out reading image from {url}") from e
            except requests.exceptions.RequestException as e:
                raise TransportError(f"failed to read image from response: {e}") from e
            except (OSError, ValueError) as e:
                raise StabilityError(f"failed to copy image to writer: {e}") from e

        image = b"".join(chunks)
        logger.debug(f"📥 Received {len(image)} byte image")
        return image

    def generate_sd3(self, request: GenerationRequest, write_to: Optional[BinaryIO] = None) -> bytes:
        """Generate an image with the Stable Diffusion 3 endpoint"""
        return self.generate(SD3_PATH, request, write_to)

    def generate_ultra(self, request: UltraRequest, write_to: Optional[BinaryIO] = None) -> bytes:
        """Generate an image with the Stable Image Ultra endpoint"""
        return self.generate(ULTRA_PATH, request, write_to)
