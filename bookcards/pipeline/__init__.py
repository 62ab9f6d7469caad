"""Ingestion pipeline: title -> completion -> cards -> book -> persisted batch."""

from bookcards.pipeline.orchestrator import IngestionPipeline, build_prompt

__all__ = ["IngestionPipeline", "build_prompt"]
