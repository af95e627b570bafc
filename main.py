# sdcli - Stable Diffusion command line client
# Copyright (C) 2025 brokechubb
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

import argparse
import asyncio
import errno
import os
import signal
import sys
import tempfile
import time
from typing import List, Optional

from config import (
    LOG_FILE,
    LOG_LEVEL,
    STABILITY_API_BASE_URL,
    STABILITY_API_KEY,
    STABILITY_REQUEST_TIMEOUT,
    Config,
    ConfigError,
    default_config_path,
    parse_config_file,
)
from media.metadata import MetadataError, get_metadata_adder
from stability import AsyncStabilityClient
from stability.exceptions import (
    RequestCancelledError,
    StabilityError,
    ValidationError,
)
from stability.models import (
    ALL_OUTPUT_FORMATS,
    ALL_SD3_MODELS,
    SD3_PATH,
    ULTRA_PATH,
    VALID_ASPECT_RATIOS,
    AspectRatio,
    GenerationRequest,
    SD3Model,
    UltraRequest,
)
from utils.logging_config import get_logger, setup_logging
from utils.post_generation import run_post_generation_command

logger = get_logger(__name__)

RATIO_CHOICES = ", ".join(str(r) for r in VALID_ASPECT_RATIOS)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sdcli",
        description="Generate images with the Stability AI API",
    )
    parser.add_argument("--config", help="Path to the JSON settings file")
    parser.add_argument("--output-dir", help="Directory to write the image to, overrides the settings file")
    parser.add_argument("--log-level", default=LOG_LEVEL, help="DEBUG, INFO, WARNING or ERROR")

    subparsers = parser.add_subparsers(dest="command", required=True)

    sd3 = subparsers.add_parser("sd3", aliases=["gen3"], help="Generate an image with Stable Diffusion 3")
    sd3.add_argument("--model", default=SD3Model.SD3_LARGE.value,
                     help=f"The model to use ({', '.join(ALL_SD3_MODELS)})")
    sd3.add_argument("--strength", type=float, default=None,
                     help="The strength to use when doing image-to-image generation")
    sd3.add_argument("--image", help="The image to use for image-to-image generation")

    ultra = subparsers.add_parser("ultra", help="Generate an image with Stable Image Ultra")

    for sub in (sd3, ultra):
        sub.add_argument("--ratio", default="1:1", help=f"The aspect ratio to generate ({RATIO_CHOICES})")
        sub.add_argument("--format", dest="output_format", default="png",
                         help=f"The format of the returned image ({', '.join(ALL_OUTPUT_FORMATS)})")
        sub.add_argument("--negative", default="", help="The negative prompt to use during generation")
        sub.add_argument("prompt", nargs="+", help="The prompt to use for generation")

    return parser


def load_settings(config_path: str) -> Config:
    """Read the settings file, falling back to the environment when it does not exist"""
    if not os.path.exists(config_path) and STABILITY_API_KEY:
        logger.debug(f"No settings file at {config_path}, using STABILITY_API_KEY")
        return Config(api_key=STABILITY_API_KEY)
    return parse_config_file(config_path)


def output_path_for(directory: str, output_format: str, now: Optional[float] = None) -> str:
    """Images are named after the Unix timestamp of the generation"""
    timestamp = int(now if now is not None else time.time())
    return os.path.join(directory, f"{timestamp}.{output_format}")


def write_image(path: str, data: bytes) -> None:
    """
    Write data to a new file at path.

    The bytes go to a temporary file in the same directory which is renamed
    into place, so an interrupted write never leaves a partial image at path.
    """
    if os.path.exists(path):
        raise FileExistsError(errno.EEXIST, os.strerror(errno.EEXIST), path)

    fd, tmp_path = tempfile.mkstemp(prefix=".sdcli-", suffix=".part", dir=os.path.dirname(path) or ".")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_path, path)
    finally:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)


async def request_image(client: AsyncStabilityClient, path: str, request) -> bytes:
    """Run one generation, turning Ctrl-C into a cancelled request"""
    cancel_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    try:
        loop.add_signal_handler(signal.SIGINT, cancel_event.set)
        handler_installed = True
    except (NotImplementedError, RuntimeError, ValueError):
        # Windows event loops and non-main threads cannot install handlers
        handler_installed = False

    try:
        async with client:
            return await client.generate(path, request, cancel_event=cancel_event)
    finally:
        if handler_installed:
            loop.remove_signal_handler(signal.SIGINT)


def run(argv: Optional[List[str]] = None, client_factory=AsyncStabilityClient) -> int:
    """Entry point returning the process exit status"""
    args = build_parser().parse_args(argv)

    setup_logging(args.log_level, log_to_file=bool(LOG_FILE), log_file_path=LOG_FILE or "logs/sdcli.log")

    config_path = args.config or default_config_path()
    try:
        settings = load_settings(config_path)
    except ConfigError as e:
        logger.error(f"❌ Unable to read config file: {e}")
        return 1

    if not settings.api_key:
        logger.error("❌ No API key configured. Set api_key in the config file or STABILITY_API_KEY.")
        return 1

    prompt = " ".join(args.prompt).strip()

    try:
        ratio = AspectRatio.parse(args.ratio)
    except ValidationError as e:
        logger.error(f"aspect ratio is invalid: {e}")
        return 1

    image_file = None
    if args.command in ("sd3", "gen3"):
        if args.image:
            try:
                image_file = open(args.image, "rb")
            except OSError as e:
                logger.error(f"failed to open image {args.image!r}: {e}")
                return 1
        endpoint = SD3_PATH
        request = GenerationRequest(
            prompt=prompt,
            model=args.model,
            output_format=args.output_format,
            aspect_ratio=ratio,
            negative_prompt=args.negative,
            strength=args.strength,
            image=image_file,
        )
    else:
        endpoint = ULTRA_PATH
        request = UltraRequest(
            prompt=prompt,
            negative_prompt=args.negative,
            aspect_ratio=ratio,
            output_format=args.output_format,
        )

    client = client_factory(
        settings.api_key,
        base_url=STABILITY_API_BASE_URL,
        timeout=STABILITY_REQUEST_TIMEOUT,
    )

    logger.info(f"🎨 Generating {args.output_format} image ({ratio}) via {endpoint}")
    try:
        image = asyncio.run(request_image(client, endpoint, request))
    except ValidationError as e:
        logger.error(f"request is invalid: {e}")
        return 1
    except RequestCancelledError:
        logger.warning("🛑 Generation cancelled")
        return 130
    except StabilityError as e:
        logger.error(f"failed to generate image: {e}")
        return 1
    finally:
        if image_file is not None:
            image_file.close()

    try:
        tagged = get_metadata_adder(args.output_format)(image, prompt)
    except MetadataError as e:
        logger.error(f"failed to add new exif metadata: {e}")
        return 1

    output_dir = args.output_dir or settings.output_directory or "."
    output_file = output_path_for(output_dir, args.output_format)

    try:
        write_image(output_file, tagged)
    except FileExistsError:
        logger.error(f"output file already exists: {output_file}")
        return 1
    except OSError as e:
        logger.error(f"failed while writing to output file {output_file}: {e}")
        return 1

    logger.info(f"✅ Saved image to {output_file}")

    if settings.post_generation_command:
        run_post_generation_command(settings.post_generation_command, output_file)

    return 0


def main():
    sys.exit(run())


if __name__ == "__main__":
    main()
