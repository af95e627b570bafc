#!/usr/bin/env python3
"""
Tests for the post-generation hook
"""

import os
import subprocess
import sys
import unittest
from unittest.mock import patch

# Add the project root to the path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from utils.post_generation import run_post_generation_command


class TestPostGeneration(unittest.TestCase):
    """Test cases for run_post_generation_command"""

    @patch("utils.post_generation.subprocess.run")
    def test_runs_with_path(self, mock_run):
        """Test that the image path is appended to the command"""
        mock_run.return_value = subprocess.CompletedProcess(args=[], returncode=0)
        self.assertTrue(run_post_generation_command("open -a Preview", "/tmp/1.png"))
        mock_run.assert_called_once_with(["open", "-a", "Preview", "/tmp/1.png"], check=False)

    @patch("utils.post_generation.subprocess.run")
    def test_non_zero_exit(self, mock_run):
        """Test that a failing command is reported but does not raise"""
        mock_run.return_value = subprocess.CompletedProcess(args=[], returncode=2)
        with self.assertLogs("utils.post_generation", level="ERROR"):
            self.assertFalse(run_post_generation_command("feh", "/tmp/1.png"))

    @patch("utils.post_generation.subprocess.run", side_effect=FileNotFoundError("no such program"))
    def test_missing_program(self, mock_run):
        """Test that a command that cannot start is reported but does not raise"""
        with self.assertLogs("utils.post_generation", level="ERROR"):
            self.assertFalse(run_post_generation_command("not-a-real-viewer", "/tmp/1.png"))

    @patch("utils.post_generation.subprocess.run")
    def test_empty_command(self, mock_run):
        """Test that nothing runs without a command"""
        self.assertFalse(run_post_generation_command("", "/tmp/1.png"))
        mock_run.assert_not_called()


if __name__ == '__main__':
    unittest.main()
