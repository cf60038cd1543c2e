"""Mapping from pipeline status to the progress shown to users."""

from __future__ import annotations

from typing import assert_never

from reciplan.models.ingest import TOTAL_STEPS, IngestStatus, ProgressInfo


def map_status(status: IngestStatus) -> ProgressInfo:
    """Return the progress step, title, and description for ``status``.

    Every status has exactly one mapping. ``FAILED`` carries a generic title;
    callers overlay the specific failure message from their error classifier.
    """

    match status:
        case IngestStatus.QUEUED:
            return _step(1, "Queued", "Your recipe is in the processing queue")
        case IngestStatus.DOWNLOADING:
            return _step(2, "Downloading", "Downloading video from TikTok")
        case IngestStatus.EXTRACTING:
            return _step(3, "Extracting", "Extracting audio and video frames")
        case IngestStatus.TRANSCRIBING:
            return _step(4, "Transcribing", "Converting speech to text")
        case IngestStatus.DRAFT_TRANSCRIBED:
            return _step(5, "Transcription Complete", "Audio transcription finished")
        case IngestStatus.OCRING:
            return _step(6, "Reading Text", "Reading on-screen text from the video")
        case IngestStatus.OCR_DONE:
            return _step(7, "Text Extraction Complete", "On-screen text captured")
        case IngestStatus.LLM_REFINING:
            return _step(8, "AI Processing", "Creating your recipe with AI")
        case IngestStatus.DRAFT_PARSED:
            return _step(9, "Recipe Generated", "Your recipe draft is ready")
        case IngestStatus.DRAFT_PARSED_WITH_ERRORS:
            return _step(9, "Recipe Generated (with warnings)", "Recipe created but may need review")
        case IngestStatus.COMPLETED:
            return _step(TOTAL_STEPS, "Complete", "Your recipe is ready to view!", is_complete=True)
        case IngestStatus.FAILED:
            return _step(0, "Failed", "Something went wrong processing your video", has_error=True)
        case _:
            assert_never(status)


def progress_percentage(progress: ProgressInfo) -> float:
    """Fraction of the pipeline completed, between 0.0 and 1.0."""

    if progress.total_steps <= 0:
        return 0.0
    return progress.step / progress.total_steps


def progress_text(progress: ProgressInfo) -> str:
    if progress.is_complete:
        return "Complete!"
    if progress.has_error:
        return "Processing failed"
    return f"Step {progress.step} of {progress.total_steps}"


def _step(
    step: int,
    title: str,
    description: str,
    *,
    is_complete: bool = False,
    has_error: bool = False,
) -> ProgressInfo:
    return ProgressInfo(
        step=step,
        total_steps=TOTAL_STEPS,
        title=title,
        description=description,
        is_complete=is_complete,
        has_error=has_error,
    )


__all__ = ["map_status", "progress_percentage", "progress_text"]
