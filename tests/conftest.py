"""
Pytest configuration for Cheatsheet AI tests.

This module provides fixtures and common utilities for all tests.
"""

import logging
import os
import pytest
from unittest.mock import AsyncMock, MagicMock

from cheatsheetai.command_runner import CommandFailed, CommandRunner
from cheatsheetai.config import AppConfig
from cheatsheetai.generation_client import GenerationClient, GenerationSettings
from cheatsheetai.schemas import SourceSpec


SAMPLE_CHEATSHEET = "## Introduction for the LLM Agent\n\nHello! This cheatsheet covers Demo.\n"


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo logging changes made by the CLI so caplog keeps working."""
    package_logger = logging.getLogger("cheatsheetai")
    yield
    package_logger.handlers = []
    package_logger.propagate = True
    package_logger.setLevel(logging.NOTSET)


@pytest.fixture
def mock_config(tmp_path):
    """Create a configuration rooted in a temporary directory."""
    return AppConfig(
        gemini_api_key="fake_api_key",
        output_dir=str(tmp_path / "output"),
        temp_repo_dir=str(tmp_path / "repo_temp"),
        sources_dir=str(tmp_path / "sources"),
    )


@pytest.fixture
def sample_source():
    """Create a valid source for testing."""
    return SourceSpec(
        name="Demo Tool",
        repository_url="https://github.com/test/demo",
        docs_relative_path="docs",
        origin="demo.json",
    )


@pytest.fixture
def fake_runner():
    """Command runner whose git clone creates a docs folder and whose extractor returns text."""
    runner = MagicMock(spec=CommandRunner)
    runner.extracted_text = "docs/index.md\n---\n# Demo\nUsage notes.\n"

    def run(program, args, cwd=None):
        if program == "git":
            workspace = args[-1]
            os.makedirs(os.path.join(workspace, "docs"), exist_ok=True)
            with open(os.path.join(workspace, "docs", "index.md"), "w") as f:
                f.write("# Demo\n")
            return ""
        if program == "files-to-prompt":
            return runner.extracted_text
        raise CommandFailed(program, 127, "unexpected program")

    runner.run.side_effect = run
    return runner


@pytest.fixture
def mock_generation_client():
    """Generation client that returns a well-formed cheatsheet."""
    client = MagicMock(spec=GenerationClient)
    client.settings = GenerationSettings(api_key="fake_api_key")
    client.generate = AsyncMock(return_value=SAMPLE_CHEATSHEET)
    return client
