"""Value types shared by the Stability request models"""
import re
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from stability.exceptions import (
    AspectRatioParseError,
    EmptyPromptError,
    InvalidAspectRatioError,
    PromptTooLongError,
    StrengthOutOfRangeError,
    UnknownModelError,
    UnknownOutputFormatError,
    UnsupportedAspectRatioError,
)

MAX_PROMPT_LENGTH = 10000

# Optional sign and ASCII digits only, no whitespace or underscores
_RATIO_PART = re.compile(r"[+-]?[0-9]+", re.ASCII)


class SD3Model(str, Enum):
    """Stable Diffusion 3 model variants accepted by the sd3 endpoint"""
    SD3_MEDIUM = "sd3-medium"
    SD3_LARGE = "sd3-large"
    SD3_LARGE_TURBO = "sd3-large-turbo"


ALL_SD3_MODELS = [m.value for m in SD3Model]


class OutputFormat(str, Enum):
    """Image formats the API can return"""
    PNG = "png"
    JPEG = "jpeg"


ALL_OUTPUT_FORMATS = [f.value for f in OutputFormat]


class AspectRatio(BaseModel):
    """An aspect ratio such as 16:9"""
    model_config = ConfigDict(frozen=True)

    width: int
    height: int

    def __str__(self) -> str:
        return f"{self.width}:{self.height}"

    @classmethod
    def parse(cls, ratio: str) -> "AspectRatio":
        """
        Parse a colon-delimited ratio like "4:5".

        Only the shape is checked here; whether the API accepts the ratio is
        decided by validate_ratio().
        """
        parts = ratio.split(":")
        if len(parts) != 2:
            raise AspectRatioParseError(
                f"invalid number of colons in aspect ratio: {ratio!r}",
                field="aspect_ratio", value=ratio,
            )

        width = _parse_ratio_part(parts[0], "width", ratio)
        height = _parse_ratio_part(parts[1], "height", ratio)

        return cls(width=width, height=height)

    def validate_ratio(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise InvalidAspectRatioError(
                f"invalid aspect ratio: {str(self)!r}", field="aspect_ratio", value=str(self)
            )

        if self not in VALID_ASPECT_RATIOS:
            raise UnsupportedAspectRatioError(
                f"aspect ratio is not supported: {self}", field="aspect_ratio", value=str(self)
            )


def _parse_ratio_part(part: str, side: str, ratio: str) -> int:
    if not _RATIO_PART.fullmatch(part):
        raise AspectRatioParseError(
            f"{side} ratio is not an integer: {part!r}",
            field="aspect_ratio", value=ratio,
        )
    return int(part)


VALID_ASPECT_RATIOS: List[AspectRatio] = [
    AspectRatio(width=1, height=1),
    AspectRatio(width=16, height=9),
    AspectRatio(width=21, height=9),
    AspectRatio(width=2, height=3),
    AspectRatio(width=3, height=2),
    AspectRatio(width=4, height=5),
    AspectRatio(width=5, height=4),
    AspectRatio(width=9, height=16),
    AspectRatio(width=9, height=21),
]

DEFAULT_ASPECT_RATIO = VALID_ASPECT_RATIOS[0]


def prompt_length(prompt: str) -> int:
    """Length of a prompt as the API counts it (UTF-8 bytes)"""
    return len(prompt.encode("utf-8"))


def validate_prompt(prompt: str, field: str = "prompt", required: bool = True) -> None:
    if required and not prompt:
        raise EmptyPromptError(f"{field} cannot be empty", field=field, value=prompt)

    length = prompt_length(prompt)
    if length > MAX_PROMPT_LENGTH:
        raise PromptTooLongError(
            f"{field} of length {length} is invalid: maximum length is 10,000 characters",
            field=field, value=prompt,
        )


def validate_model(model: str) -> None:
    if model not in ALL_SD3_MODELS:
        raise UnknownModelError(f"unrecognized model name: {model}", field="model", value=model)


def validate_strength(strength: Optional[float]) -> None:
    if strength is None:
        return
    # also rejects NaN
    if not 0.0 <= strength <= 1.0:
        raise StrengthOutOfRangeError(
            f"strength {strength} is invalid: must be between 0.0 and 1.0",
            field="strength", value=strength,
        )


def format_strength(strength: float) -> str:
    return f"{strength:.2f}"


def validate_output_format(output_format: str) -> None:
    if output_format not in ALL_OUTPUT_FORMATS:
        raise UnknownOutputFormatError(
            f"unknown output format {output_format!r}, must be png or jpeg",
            field="output_format", value=output_format,
        )
