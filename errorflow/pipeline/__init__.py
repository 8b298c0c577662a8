"""Error processing pipeline."""

from errorflow.pipeline.worker import ProcessingPipeline, SubmissionResult, new_event_id

__all__ = ["ProcessingPipeline", "SubmissionResult", "new_event_id"]
