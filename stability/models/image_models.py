"""Pydantic models for Stability image generation requests"""
import io
import os
from abc import abstractmethod
from enum import Enum
from typing import Any, BinaryIO, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, field_validator
from urllib3.fields import RequestField
from urllib3.filepost import encode_multipart_formdata

from stability.exceptions import SerializationError
from stability.models.fields import (
    DEFAULT_ASPECT_RATIO,
    AspectRatio,
    OutputFormat,
    SD3Model,
    format_strength,
    validate_model,
    validate_output_format,
    validate_prompt,
    validate_strength,
)

SD3_PATH = "/v2beta/stable-image/generate/sd3"
ULTRA_PATH = "/v2beta/stable-image/generate/ultra"


class _FormRequest(BaseModel):
    """Shared multipart serialization for form-data endpoints"""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @field_validator("*", mode="before")
    @classmethod
    def unwrap_enums(cls, value: Any) -> Any:
        if isinstance(value, Enum):
            return value.value
        return value

    @abstractmethod
    def validate_request(self) -> None:
        """Raise the first ValidationError the request violates"""

    @abstractmethod
    def _form_fields(self) -> List[RequestField]:
        """Form parts in wire order"""

    def write_form_data(self, sink: BinaryIO, boundary: Optional[str] = None) -> str:
        """
        Write the request as multipart/form-data to sink.

        Returns the Content-Type header the body has to be sent with.
        """
        body, content_type = encode_multipart_formdata(self._form_fields(), boundary=boundary)

        try:
            sink.write(body)
        except (OSError, ValueError) as e:
            raise SerializationError(f"failed to write form data for request: {e}") from e

        return content_type

    def to_form_data(self, boundary: Optional[str] = None) -> Tuple[bytes, str]:
        """Serialize into memory, returning the body and its Content-Type"""
        buf = io.BytesIO()
        content_type = self.write_form_data(buf, boundary=boundary)
        return buf.getvalue(), content_type


def _text_field(name: str, value: str) -> RequestField:
    field = RequestField(name=name, data=value)
    field.make_multipart()
    return field


class GenerationRequest(_FormRequest):
    """
    Parameters for the Stable Diffusion 3 endpoint.

    The image, when given, is a readable binary stream owned by the caller.
    It is read to exhaustion during serialization but never closed.
    """
    prompt: str
    model: str = SD3Model.SD3_LARGE.value
    output_format: str = OutputFormat.PNG.value
    aspect_ratio: AspectRatio = DEFAULT_ASPECT_RATIO
    negative_prompt: str = ""
    strength: Optional[float] = None
    image: Optional[Any] = None

    def validate_request(self) -> None:
        validate_prompt(self.prompt, "prompt")
        validate_prompt(self.negative_prompt, "negative_prompt", required=False)
        validate_model(self.model)
        self.aspect_ratio.validate_ratio()
        validate_strength(self.strength)
        validate_output_format(self.output_format)

    def _form_fields(self) -> List[RequestField]:
        fields = [
            _text_field("aspect_ratio", str(self.aspect_ratio)),
            _text_field("prompt", self.prompt),
        ]

        if self.model:
            fields.append(_text_field("model", self.model))

        if self.output_format:
            fields.append(_text_field("output_format", self.output_format))

        if self.negative_prompt:
            fields.append(_text_field("negative_prompt", self.negative_prompt))

        # 0.0 is dropped as well, the API treats a missing strength the same way
        if self.strength:
            fields.append(_text_field("strength", format_strength(self.strength)))

        if self.image is not None:
            fields.append(self._image_field())

        return fields

    def _image_field(self) -> RequestField:
        try:
            data = self.image.read()
        except (OSError, ValueError) as e:
            raise SerializationError(f"failed to copy image to form fields for request: {e}") from e

        name = getattr(self.image, "name", None)
        filename = os.path.basename(name) if isinstance(name, str) and name else "image"

        field = RequestField(name="image", data=data, filename=filename)
        field.make_multipart(content_type="application/octet-stream")
        return field


class UltraRequest(_FormRequest):
    """Parameters for the Stable Image Ultra endpoint"""
    prompt: str
    negative_prompt: str = ""
    aspect_ratio: AspectRatio = DEFAULT_ASPECT_RATIO
    output_format: str = OutputFormat.PNG.value

    def validate_request(self) -> None:
        validate_prompt(self.prompt, "prompt")
        validate_prompt(self.negative_prompt, "negative_prompt", required=False)
        self.aspect_ratio.validate_ratio()
        validate_output_format(self.output_format)

    def _form_fields(self) -> List[RequestField]:
        fields = [_text_field("prompt", self.prompt)]

        if self.negative_prompt:
            fields.append(_text_field("negative_prompt", self.negative_prompt))

        fields.append(_text_field("aspect_ratio", str(self.aspect_ratio)))
        fields.append(_text_field("output_format", self.output_format))

        return fields
