"""Run the user's post-generation command on a saved image"""
import shlex
import subprocess

from utils.logging_config import get_logger

logger = get_logger(__name__)


def run_post_generation_command(command: str, image_path: str) -> bool:
    """
    Invoke command with image_path as its last argument.

    Failures are logged and reported through the return value only; the image
    on disk is never touched.

    Returns:
        bool: True if the command ran and exited with status 0
    """
    if not command:
        return False

    argv = shlex.split(command) + [image_path]

    try:
        result = subprocess.run(argv, check=False)
    except OSError as e:
        logger.error(f"post-generation command failed to start: {command} {image_path!r}: {e}")
        return False

    if result.returncode != 0:
        logger.error(
            f"post-generation command failed: {command} {image_path!r} exited with {result.returncode}"
        )
        return False

    logger.debug(f"post-generation command finished: {command} {image_path!r}")
    return True
