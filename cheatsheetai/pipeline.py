"""
Per-source pipeline for Cheatsheet AI.

This module processes one documentation source end to end: prepare a workspace,
clone the repository, extract its documentation, generate a cheatsheet and save it.
The workspace is removed however the run ends.
"""

import errno
import logging
import os
import re
import shutil
from typing import Optional

from cheatsheetai.command_runner import CommandFailed, CommandNotFound, CommandRunner
from cheatsheetai.config import AppConfig
from cheatsheetai.generation_client import GenerationClient, GenerationFailed
from cheatsheetai.schemas import FailureReason, PipelineResult, SourceSpec


logger = logging.getLogger("cheatsheetai.pipeline")


class StepFailed(Exception):
    """A pipeline step stopped the run."""

    def __init__(self, reason: FailureReason, message: str, generation_failure=None):
        self.reason = reason
        self.generation_failure = generation_failure
        super().__init__(message)


def workspace_slug(name: str) -> str:
    """Directory name for a source's temporary clone."""
    return re.sub(r"[^a-z0-9]", "_", name.lower())


def output_filename(name: str) -> str:
    """Cheatsheet filename for a project, e.g. "My Tool!" -> "my_tool__cheatsheet.md"."""
    return f"{re.sub(r'[^a-z0-9]+', '_', name.lower())}_cheatsheet.md"


def repository_relative(path: str) -> str:
    """Drop any drive and leading separators so the path joins under the repository root."""
    _, path = os.path.splitdrive(path)
    separators = os.sep + (os.altsep or "")
    return path.lstrip(separators)


def is_within(path: str, directory: str) -> bool:
    """Whether path resolves to directory or somewhere below it."""
    real_directory = os.path.realpath(directory)
    return os.path.commonpath([real_directory, os.path.realpath(path)]) == real_directory


def remove_workspace(path: str) -> bool:
    """Remove a workspace directory.

    Returns:
        bool: True if the directory is gone, False if removal failed
    """
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        return True
    except OSError as e:
        logger.warning(f"⚠️ Could not clean temporary directory {path}: {e}")
        return False
    return True


class SourcePipeline:
    """Runs clone, extraction, generation and persistence for one source at a time.

    ``process`` never raises: every failure is logged and returned as a
    failed PipelineResult so the batch can move on to the next source.
    """

    def __init__(
        self,
        config: AppConfig,
        generation_client: GenerationClient,
        command_runner: Optional[CommandRunner] = None,
    ):
        """Initialize the pipeline.

        Args:
            config: Application configuration (directories and tool paths)
            generation_client: Client used to generate cheatsheet text
            command_runner: Runner for git and files-to-prompt
        """
        self.config = config
        self.generation_client = generation_client
        self.command_runner = command_runner or CommandRunner()
        self.logger = logging.getLogger(f"cheatsheetai.{self.__class__.__name__}")

    def workspace_path(self, source: SourceSpec) -> str:
        return os.path.join(self.config.temp_repo_dir, workspace_slug(source.name))

    def output_path(self, source: SourceSpec) -> str:
        return os.path.join(self.config.output_dir, output_filename(source.name))

    async def process(self, source: SourceSpec) -> PipelineResult:
        """Process one source.

        Args:
            source: Source to process

        Returns:
            PipelineResult: Success with the saved path, or failure with its reason
        """
        self.logger.info(f"---\n🚀 Processing source: {source.name} (from {source.origin}) ---")
        workspace = self.workspace_path(source)

        try:
            output_path = await self._process(source, workspace)
            self.logger.info(f"✅ Successfully generated cheatsheet for {source.name}!")
            return PipelineResult.success(source, output_path)

        except StepFailed as e:
            self.logger.error(f"❌ Failed to process source {source.name} (from {source.origin}): {e}")
            return PipelineResult.failure(source, e.reason, str(e), e.generation_failure)

        except Exception as e:
            self.logger.error(
                f"❌ Failed to process source {source.name} (from {source.origin}): {e}",
                exc_info=True,
            )
            return PipelineResult.failure(source, FailureReason.UNEXPECTED, str(e))

        finally:
            self.logger.info(f"🧹 Cleaning up temporary directory: {workspace}")
            remove_workspace(workspace)

    async def _process(self, source: SourceSpec, workspace: str) -> str:
        self._prepare_workspace(workspace)
        self._clone(source, workspace)
        docs_path = self._docs_path(source, workspace)
        documentation = self._extract(source, docs_path)

        try:
            content = await self.generation_client.generate(documentation, source.name)
        except GenerationFailed as e:
            raise StepFailed(FailureReason.GENERATION_FAILED, str(e), generation_failure=e.kind) from e

        return self._save(source, content)

    def _prepare_workspace(self, workspace: str) -> None:
        self.logger.info(f"🧹 Cleaning up specific temporary directory: {workspace}")
        remove_workspace(workspace)
        try:
            os.makedirs(workspace, exist_ok=True)
        except OSError as e:
            raise StepFailed(FailureReason.WORKSPACE_FAILED, f"Could not create workspace {workspace}: {e}") from e

    def _clone(self, source: SourceSpec, workspace: str) -> None:
        self.logger.info(f"⬇️ Cloning repository: {source.repository_url} into {workspace}")
        try:
            self.command_runner.run(
                self.config.git_executable,
                ["clone", "--depth=1", source.repository_url, workspace],
            )
        except CommandFailed as e:
            raise StepFailed(
                FailureReason.CLONE_FAILED,
                f"Failed to clone repository for {source.name}: {e}",
            ) from e

    def _docs_path(self, source: SourceSpec, workspace: str) -> str:
        docs_path = os.path.join(workspace, repository_relative(source.docs_relative_path))
        self.logger.info(f"🔍 Checking documentation path: {docs_path}")
        if not is_within(docs_path, workspace):
            raise StepFailed(
                FailureReason.DOCS_PATH_MISSING,
                f"Documentation path escapes the cloned repository: {docs_path} "
                f"(Relative path: {source.docs_relative_path})",
            )
        if not os.path.exists(docs_path):
            raise StepFailed(
                FailureReason.DOCS_PATH_MISSING,
                f"Documentation directory not found at specified path: {docs_path} "
                f"(Relative path: {source.docs_relative_path})",
            )
        return docs_path

    def _extract(self, source: SourceSpec, docs_path: str) -> str:
        extractor = self.config.files_to_prompt_executable
        self.logger.info(f"📄 Running {extractor} on: {docs_path}")
        try:
            documentation = self.command_runner.run(extractor, [docs_path])
        except CommandNotFound as e:
            self.logger.error(f"❌ Error: '{extractor}' command not found. Make sure it's installed and in your PATH.")
            self.logger.error("   (Install via: pip install files-to-prompt)")
            raise StepFailed(FailureReason.EXTRACTOR_MISSING, str(e)) from e
        except CommandFailed as e:
            raise StepFailed(
                FailureReason.EXTRACTION_FAILED,
                f"{extractor} execution failed for {source.name}: {e}",
            ) from e

        if not documentation.strip():
            raise StepFailed(
                FailureReason.NO_DOCUMENTATION_EXTRACTED,
                f"{extractor} did not produce any output for {source.name}. "
                f"Check the docs path ('{source.docs_relative_path}') and file contents.",
            )

        size = len(documentation.encode("utf-8"))
        self.logger.info(
            f"📚 Extracted {size} bytes ({size / 1024 / 1024:.2f} MB) of documentation content for {source.name}."
        )
        return documentation

    def _save(self, source: SourceSpec, content: str) -> str:
        path = self.output_path(source)
        f = None
        try:
            os.makedirs(self.config.output_dir, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                f.write(content)
        except OSError as e:
            self.logger.error(f"❌ Error saving cheatsheet to file '{path}': {e}")
            if e.errno in (errno.EACCES, errno.EPERM):
                self.logger.error(f"   Hint: Check write permissions for the output directory {self.config.output_dir}.")
            # Only a file this call opened can hold a partial write
            if f is not None:
                try:
                    os.remove(path)
                except OSError:
                    self.logger.warning(f"⚠️ Could not remove partial cheatsheet {path}")
            raise StepFailed(
                FailureReason.PERSIST_FAILED,
                f"Failed to save cheatsheet for {source.name}: {e}",
            ) from e

        self.logger.info(f"💾 Cheatsheet saved to: {path}")
        return path
