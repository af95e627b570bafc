#!/usr/bin/env python3
"""
Tests for the sdcli command line flow
"""

import io
import json
import os
import sys
import tempfile
import unittest
from unittest.mock import patch

import httpx
from PIL import Image

# Add the project root to the path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, os.path.dirname(__file__))

import config
import main
from form_helpers import parse_form
from media.metadata import IMAGE_DESCRIPTION_TAG
from stability.clients import AsyncStabilityClient


def png_bytes():
    buf = io.BytesIO()
    Image.new("RGB", (4, 4), color=(0, 120, 255)).save(buf, format="PNG")
    return buf.getvalue()


class TestCli(unittest.TestCase):
    """Test cases for main.run"""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)
        self.output_dir = os.path.join(self.tmpdir.name, "out")
        os.makedirs(self.output_dir)
        self.config_path = os.path.join(self.tmpdir.name, "config.json")
        self.write_config()

        for target in ("config.STABILITY_API_KEY", "main.STABILITY_API_KEY", "main.LOG_FILE"):
            patcher = patch(target, None if "API_KEY" in target else "")
            patcher.start()
            self.addCleanup(patcher.stop)

        self.requests = []
        self.status = 200
        self.body = png_bytes()

    def write_config(self, **overrides):
        settings = {"api_key": "sk-test", "output_directory": self.output_dir, "post_generation_command": ""}
        settings.update(overrides)
        with open(self.config_path, "w", encoding="utf-8") as f:
            json.dump(settings, f)

    def handler(self, request):
        self.requests.append(request)
        return httpx.Response(self.status, content=self.body)

    def client_factory(self, api_key, base_url, timeout):
        transport = httpx.MockTransport(self.handler)
        return AsyncStabilityClient(
            api_key, base_url="https://api.example.test", timeout=timeout,
            client=httpx.AsyncClient(transport=transport),
        )

    def run_cli(self, *args):
        return main.run(["--config", self.config_path, *args], client_factory=self.client_factory)

    def outputs(self):
        return sorted(os.listdir(self.output_dir))

    def test_sd3_generation(self):
        """Test a full sd3 run writes a tagged image"""
        status = self.run_cli("sd3", "--model", "sd3-large", "a", "bear", "riding", "a", "unicycle")

        self.assertEqual(status, 0)
        self.assertEqual(len(self.requests), 1)
        request = self.requests[0]
        self.assertEqual(request.headers["Authorization"], "Bearer sk-test")
        self.assertEqual(parse_form(request.content, request.headers["Content-Type"]), [
            ("aspect_ratio", b"1:1"),
            ("prompt", b"a bear riding a unicycle"),
            ("model", b"sd3-large"),
            ("output_format", b"png"),
        ])

        files = self.outputs()
        self.assertEqual(len(files), 1)
        self.assertTrue(files[0].endswith(".png"))
        with Image.open(os.path.join(self.output_dir, files[0])) as image:
            self.assertEqual(image.getexif().get(IMAGE_DESCRIPTION_TAG), "a bear riding a unicycle")

    def test_image_to_image(self):
        """Test that --image and --strength reach the request"""
        reference = os.path.join(self.tmpdir.name, "ref.png")
        with open(reference, "wb") as f:
            f.write(png_bytes())

        status = self.run_cli("sd3", "--image", reference, "--strength", "0.4", "a", "cat")

        self.assertEqual(status, 0)
        fields = dict(parse_form(self.requests[0].content, self.requests[0].headers["Content-Type"]))
        self.assertEqual(fields["strength"], b"0.40")
        self.assertEqual(fields["image"], png_bytes())

    def test_ultra_generation(self):
        """Test the ultra sub-command"""
        status = self.run_cli("ultra", "--ratio", "16:9", "a", "lighthouse")
        self.assertEqual(status, 0)
        self.assertTrue(str(self.requests[0].url).endswith("/v2beta/stable-image/generate/ultra"))

    def test_disallowed_ratio(self):
        """Test that 3:5 fails without a network call or output file"""
        status = self.run_cli("sd3", "--ratio", "3:5", "a", "bear")
        self.assertEqual(status, 1)
        self.assertEqual(self.requests, [])
        self.assertEqual(self.outputs(), [])

    def test_malformed_ratio(self):
        """Test that an unparseable ratio fails early"""
        self.assertEqual(self.run_cli("sd3", "--ratio", "wide", "a", "bear"), 1)
        self.assertEqual(self.requests, [])

    def test_unknown_model(self):
        """Test that unknown models fail without a network call"""
        self.assertEqual(self.run_cli("sd3", "--model", "sd3turbo", "a", "bear"), 1)
        self.assertEqual(self.requests, [])

    def test_nan_strength(self):
        """Test that --strength nan fails without a network call"""
        self.assertEqual(self.run_cli("sd3", "--strength", "nan", "a", "bear"), 1)
        self.assertEqual(self.requests, [])

    def test_remote_error(self):
        """Test that a rejected request leaves no file behind"""
        self.status = 403
        self.body = b"invalid key"
        with self.assertLogs("main", level="ERROR") as logs:
            status = self.run_cli("sd3", "a", "bear")
        self.assertEqual(status, 1)
        self.assertIn("invalid key", "\n".join(logs.output))
        self.assertEqual(self.outputs(), [])

    def test_refuses_to_overwrite(self):
        """Test that an existing output file is never replaced"""
        with patch("main.time.time", return_value=1700000000):
            existing = os.path.join(self.output_dir, "1700000000.png")
            with open(existing, "wb") as f:
                f.write(b"keep me")
            status = self.run_cli("sd3", "a", "bear")
        self.assertEqual(status, 1)
        with open(existing, "rb") as f:
            self.assertEqual(f.read(), b"keep me")

    def test_interrupted_write_leaves_nothing(self):
        """Test that an interrupt before the rename leaves no partial or temporary file"""
        target = os.path.join(self.output_dir, "1.png")
        with patch("main.os.replace", side_effect=KeyboardInterrupt):
            with self.assertRaises(KeyboardInterrupt):
                main.write_image(target, b"PNGDATA")
        self.assertEqual(self.outputs(), [])

    def test_write_image(self):
        """Test that write_image creates the file and cleans up after itself"""
        target = os.path.join(self.output_dir, "1.png")
        main.write_image(target, b"PNGDATA")
        self.assertEqual(self.outputs(), ["1.png"])
        with open(target, "rb") as f:
            self.assertEqual(f.read(), b"PNGDATA")
        with self.assertRaises(FileExistsError):
            main.write_image(target, b"OTHER")

    def test_post_generation_command(self):
        """Test that the hook gets the saved path and its failure does not matter"""
        self.write_config(post_generation_command="viewer --fullscreen")
        with patch("main.run_post_generation_command", return_value=False) as hook:
            status = self.run_cli("sd3", "a", "bear")
        self.assertEqual(status, 0)
        hook.assert_called_once()
        command, path = hook.call_args[0]
        self.assertEqual(command, "viewer --fullscreen")
        self.assertTrue(os.path.exists(path))

    def test_missing_config(self):
        """Test that a missing config without an environment key fails"""
        os.remove(self.config_path)
        self.assertEqual(self.run_cli("sd3", "a", "bear"), 1)

    def test_missing_api_key(self):
        """Test that an empty api key fails before any request"""
        self.write_config(api_key="")
        self.assertEqual(self.run_cli("sd3", "a", "bear"), 1)
        self.assertEqual(self.requests, [])

    def test_output_path_for(self):
        """Test output file naming"""
        self.assertEqual(main.output_path_for("/images", "jpeg", now=1718000000.7), "/images/1718000000.jpeg")


if __name__ == '__main__':
    unittest.main()
