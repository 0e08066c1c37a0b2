"""Document-to-template pipeline.

Example:
    >>> from paperkit.pipeline import create_context, run_pipeline
    >>>
    >>> async with create_context() as context:
    ...     result = await run_pipeline(context, request, auto_fix=True)
    >>> result.report.score
"""

from .lib import PipelineContext, PipelineResult, create_context, run_pipeline

__all__ = [
    "PipelineContext",
    "PipelineResult",
    "create_context",
    "run_pipeline",
]
