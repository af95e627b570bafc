"""Async client for the Stability image generation API"""
import asyncio
from typing import BinaryIO, List, Optional

import httpx

from config import STABILITY_API_BASE_URL, STABILITY_REQUEST_TIMEOUT
from stability.clients.common import ImageRequest, build_headers, prepare_request
from stability.exceptions import (
    RemoteError,
    RequestCancelledError,
    RequestTimeoutError,
    StabilityError,
    TransportError,
)
from stability.models import SD3_PATH, ULTRA_PATH, GenerationRequest, UltraRequest

# Configure logging
from utils.logging_config import get_logger

logger = get_logger(__name__)


class AsyncStabilityClient:
    def __init__(
        self,
        api_key: str,
        base_url: str = STABILITY_API_BASE_URL,
        timeout: float = STABILITY_REQUEST_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

        # HTTP client
        self._client = client if client is not None else httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self):
        if self._owns_client:
            await self._client.aclose()

    async def _post(self, url: str, body: bytes, headers: dict, write_to: Optional[BinaryIO]) -> bytes:
        try:
            async with self._client.stream("POST", url, content=body, headers=headers) as response:
                if response.status_code != 200:
                    await response.aread()
                    logger.error(f"Stability API returned {response.status_code} for {url}")
                    raise RemoteError(response.status_code, response.text)

                chunks: List[bytes] = []
                async for chunk in response.aiter_bytes():
                    chunks.append(chunk)
                    if write_to is not None:
                        write_to.write(chunk)
                return b"".join(chunks)
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(f"request to {url} timed out") from e
        except httpx.HTTPError as e:
            raise TransportError(f"failed to send request: {e}") from e
        except (OSError, ValueError) as e:
            raise StabilityError(f"failed to copy image to writer: {e}") from e

    async def generate(
        self,
        path: str,
        request: ImageRequest,
        write_to: Optional[BinaryIO] = None,
        cancel_event: Optional[asyncio.Event] = None,
        deadline: Optional[float] = None,
    ) -> bytes:
        """
        Validate, serialize and POST a request, returning the image bytes.

        Setting cancel_event aborts the in-flight request and raises
        RequestCancelledError. deadline bounds the whole exchange in seconds,
        on top of the per-operation httpx timeout. Cancelling the calling task
        still raises asyncio.CancelledError.
        """
        body, content_type = prepare_request(request)
        url = f"{self.base_url}{path}"

        if cancel_event is not None and cancel_event.is_set():
            raise RequestCancelledError("request cancelled by caller")

        logger.debug(f"📤 Sending {len(body)} byte form to {url}")

        post = asyncio.ensure_future(
            self._post(url, body, build_headers(self.api_key, content_type), write_to)
        )
        waiter = asyncio.ensure_future(cancel_event.wait()) if cancel_event is not None else None

        try:
            watched = {post} if waiter is None else {post, waiter}
            done, _ = await asyncio.wait(watched, timeout=deadline, return_when=asyncio.FIRST_COMPLETED)

            if post not in done:
                post.cancel()
                await asyncio.gather(post, return_exceptions=True)
                if waiter is not None and waiter in done:
                    logger.info("Image request cancelled")
                    raise RequestCancelledError("request cancelled by caller")
                raise RequestTimeoutError(f"request to {url} did not finish within {deadline}s")

            image = post.result()
        finally:
            for task in (post, waiter):
                if task is not None and not task.done():
                    task.cancel()

        logger.debug(f"📥 Received {len(image)} byte image")
        return image

    async def generate_sd3(self, request: GenerationRequest, **kwargs) -> bytes:
        """Generate an image with the Stable Diffusion 3 endpoint"""
        return await self.generate(SD3_PATH, request, **kwargs)

    async def generate_ultra(self, request: UltraRequest, **kwargs) -> bytes:
        """Generate an image with the Stable Image Ultra endpoint"""
        return await self.generate(ULTRA_PATH, request, **kwargs)
