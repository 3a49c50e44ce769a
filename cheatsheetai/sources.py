"""
Source loading for Cheatsheet AI.

This module resolves the batch of documentation sources to process, either from
JSON source files given on the command line or from environment variables.
"""

import json
import logging
import os
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence

from pydantic import ValidationError

from cheatsheetai.schemas import SourceSpec


logger = logging.getLogger("cheatsheetai.sources")

REQUIRED_KEYS = ("name", "repo", "path")
ENV_ORIGIN = "environment variables"

USAGE = """Usage examples:
   1. Using source files: `cheatsheetai sources/bun.json sources/react.json`
   2. Using env vars: `export REPO_URL=... PROJECT_NAME=... DOCS_DIR=... && cheatsheetai`"""


class SourceResolutionError(Exception):
    """No valid source could be resolved; nothing to process."""


@dataclass
class LoaderError:
    """A source file that was skipped."""
    path: str
    message: str


class SourceLoader:
    """Resolves SourceSpecs from source files or the environment.

    Problems with individual source files are recorded in ``errors`` and the
    file is skipped; only a complete absence of sources is fatal.
    """

    def __init__(self, sources_dir: str = "sources"):
        """Initialize the source loader.

        Args:
            sources_dir: Directory that bare source filenames are resolved against
        """
        self.sources_dir = sources_dir
        self.errors: List[LoaderError] = []

    def resolve(self, source_files: Sequence[str], environ: Optional[Mapping[str, str]] = None) -> List[SourceSpec]:
        """Resolve the ordered list of sources to process.

        Args:
            source_files: Source file paths from the command line (may be empty)
            environ: Environment to fall back to (defaults to os.environ)

        Returns:
            List[SourceSpec]: Sources in command-line order

        Raises:
            SourceResolutionError: If no valid source could be resolved
        """
        self.errors = []
        if source_files:
            return self._from_files(source_files)
        return self._from_environment(os.environ if environ is None else environ)

    def resolve_path(self, source_file: str) -> str:
        """Resolve a command-line argument to a source file path.

        Absolute paths and paths with a directory component are used as given;
        a bare filename is looked up in the sources directory.
        """
        if os.path.isabs(source_file) or os.path.dirname(source_file):
            return os.path.abspath(source_file)
        return os.path.abspath(os.path.join(self.sources_dir, source_file))

    def _from_files(self, source_files: Sequence[str]) -> List[SourceSpec]:
        logger.info(f"ℹ️ Found {len(source_files)} source file arguments. Processing each...")
        sources = []

        for source_file in source_files:
            path = self.resolve_path(source_file)
            logger.info(f"🔍 Attempting to load configuration from source file: {path}")
            source = self.load_file(path)
            if source is not None:
                sources.append(source)
                logger.info(f"✅ Added source \"{source.name}\" from {source.origin} to the processing queue.")

        if not sources:
            raise SourceResolutionError("No valid source files found or loaded from the provided arguments.")
        return sources

    def load_file(self, path: str) -> Optional[SourceSpec]:
        """Load one source file, recording an error and returning None if it is unusable."""
        if not os.path.isfile(path):
            return self._skip(path, f"Source file not found at {path}")

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            return self._skip(path, f"Error reading or parsing source file {path}: {e}")

        if not isinstance(data, dict):
            return self._skip(path, f"Source file {path} does not contain a JSON object")

        missing = [key for key in REQUIRED_KEYS if not isinstance(data.get(key), str) or not data[key].strip()]
        if missing:
            return self._skip(
                path,
                f"Source file {path} is missing required keys ({', '.join(repr(k) for k in missing)})",
            )

        return SourceSpec(
            name=data["name"],
            repository_url=data["repo"],
            docs_relative_path=data["path"],
            origin=os.path.basename(path),
        )

    def _skip(self, path: str, message: str) -> None:
        logger.error(f"❌ Error: {message}. Skipping this source.")
        self.errors.append(LoaderError(path=path, message=message))
        return None

    def _from_environment(self, environ: Mapping[str, str]) -> List[SourceSpec]:
        logger.info("ℹ️ No source files provided via arguments. Attempting to load configuration from environment variables...")
        try:
            source = SourceSpec(
                name=environ.get("PROJECT_NAME", "").strip(),
                repository_url=environ.get("REPO_URL", "").strip(),
                docs_relative_path=environ.get("DOCS_DIR", "").strip(),
                origin=ENV_ORIGIN,
            )
        except ValidationError as e:
            raise SourceResolutionError(
                "No source files provided and REPO_URL, PROJECT_NAME, and DOCS_DIR "
                "environment variables are not all set."
            ) from e

        logger.info("✅ Found configuration in environment variables.")
        return [source]


def resolve_sources(
    source_files: Sequence[str],
    environ: Optional[Mapping[str, str]] = None,
    sources_dir: str = "sources",
) -> List[SourceSpec]:
    """Resolve the sources to process.

    Args:
        source_files: Source file paths from the command line
        environ: Environment for the single-source fallback
        sources_dir: Directory for bare source filenames

    Returns:
        List[SourceSpec]: Sources to process

    Raises:
        SourceResolutionError: If no valid source could be resolved
    """
    return SourceLoader(sources_dir).resolve(source_files, environ)
