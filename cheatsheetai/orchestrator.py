"""
Orchestrator for Cheatsheet AI.

This module drives the per-source pipeline over a batch of sources, one at a
time, and keeps the success/failure tally.
"""

import logging
from typing import Awaitable, Callable, Optional, Sequence

from cheatsheetai.command_runner import CommandRunner
from cheatsheetai.config import AppConfig
from cheatsheetai.generation_client import GenerationClient, GenerationSettings
from cheatsheetai.pipeline import SourcePipeline
from cheatsheetai.schemas import BatchTally, FailureReason, PipelineResult, SourceSpec

logger = logging.getLogger("cheatsheetai.orchestrator")


async def run_all(sources: Sequence[SourceSpec], pipeline: SourcePipeline) -> BatchTally:
    """Process every source sequentially and tally the results.

    A failure in one source never stops the loop; an exception escaping the
    pipeline is counted as a failure of that source.

    Args:
        sources: Sources to process, in order
        pipeline: Pipeline used for each source

    Returns:
        BatchTally: attempted/succeeded/failed counts
    """
    tally = BatchTally()
    logger.info(f"--- Starting processing for {len(sources)} source(s) ---")

    for source in sources:
        try:
            result = await pipeline.process(source)
        except Exception as e:
            logger.error(f"❌ Unhandled error while processing {source.name} (from {source.origin}): {e}", exc_info=True)
            result = PipelineResult.failure(source, FailureReason.UNEXPECTED, str(e))

        tally.record(result)

    logger.info(
        f"--- Processing Complete --- attempted: {tally.attempted}, "
        f"succeeded: {tally.succeeded}, failed: {tally.failed}"
    )
    return tally


def create_workflow(
    config: AppConfig,
    command_runner: Optional[CommandRunner] = None,
    generation_client: Optional[GenerationClient] = None,
) -> Callable[[Sequence[SourceSpec]], Awaitable[BatchTally]]:
    """
    Create the Cheatsheet AI batch workflow.

    Args:
        config: Application configuration
        command_runner: Runner for external tools (defaults to a subprocess runner)
        generation_client: Gemini client (defaults to one built from config)

    Returns:
        Callable: Coroutine function that runs the batch
    """
    if generation_client is None:
        generation_client = GenerationClient(GenerationSettings.from_config(config))
    logger.info(f"🔧 Using Gemini Model: {generation_client.settings.model}")

    pipeline = SourcePipeline(config, generation_client, command_runner)

    async def run_workflow(sources: Sequence[SourceSpec]) -> BatchTally:
        """
        Run the workflow over a batch of sources.

        Args:
            sources: Sources to process

        Returns:
            BatchTally: Result of the batch
        """
        return await run_all(sources, pipeline)

    return run_workflow
