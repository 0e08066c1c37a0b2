"""End-to-end composition: request to validated template.

All collaborators live on an explicit PipelineContext that is built once
(typically at application start) and passed to every run. The context is the
only shared state; each run_pipeline() call is otherwise independent.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from paperkit.client import APIClient, InferenceTransport, ProgressSink
from paperkit.config import ClientConfig, load_environment
from paperkit.layout import (
    DataBinding,
    LayoutMetadata,
    LayoutSynthesizer,
    PageConfig,
    Template,
)
from paperkit.schema import AnalysisRequest, DocumentAnalysis
from paperkit.validation import LayoutValidator, ValidationReport
from paperkit.validation import auto_fix as apply_fixes

logger = logging.getLogger(__name__)


@dataclass
class PipelineContext:
    """Collaborators shared by all pipeline runs.

    Attributes:
        client: Inference client (owns the rate-limit timestamp).
        synthesizer: Layout synthesizer.
        validator: Template validator.
        page_config: Page geometry used for every layout.
    """

    client: APIClient
    synthesizer: LayoutSynthesizer
    validator: LayoutValidator
    page_config: PageConfig

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "PipelineContext":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()


def create_context(
    *,
    client_config: ClientConfig | None = None,
    page_config: PageConfig | None = None,
    transport: InferenceTransport | None = None,
    dotenv_path: str | Path | None = None,
    load_env: bool = True,
) -> PipelineContext:
    """Build a PipelineContext from the environment and explicit overrides.

    Args:
        client_config: Client settings. Read from the environment when None.
        page_config: Page settings. Read from the environment when None.
        transport: Inference transport; the client creates a GeminiTransport
            lazily when None.
        dotenv_path: .env file to load. Searched from the working directory
            when None.
        load_env: Whether to load a .env file first.

    Returns:
        A ready-to-use PipelineContext.

    Example:
        >>> async with create_context() as context:
        ...     result = await run_pipeline(context, request)
    """
    if load_env:
        load_environment(dotenv_path)

    page_config = page_config or PageConfig.from_environment()
    client = APIClient(
        client_config or ClientConfig.from_environment(), transport=transport
    )
    return PipelineContext(
        client=client,
        synthesizer=LayoutSynthesizer(page_config),
        validator=LayoutValidator(),
        page_config=page_config,
    )


@dataclass
class PipelineResult:
    """Everything produced by one pipeline run.

    Attributes:
        analysis: Sanitized analysis (``success`` is False when degraded).
        template: Synthesized template, after auto-fixes when requested.
        bindings: Data bindings of the template.
        report: Validation report of the final template.
        layout: Synthesis summary.
        fixed: Ids of issues resolved by auto-fix (from the first report).
    """

    analysis: DocumentAnalysis
    template: Template
    bindings: list[DataBinding]
    report: ValidationReport
    layout: LayoutMetadata
    fixed: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.analysis.success

    def to_dict(self) -> dict[str, Any]:
        """Renderer-ready payload: template, data object and report."""
        return {
            "success": self.success,
            "template": self.template.to_data(),
            "data": self.analysis.to_data(),
            "bindings": [
                b.model_dump(mode="json", by_alias=True) for b in self.bindings
            ],
            "report": self.report.to_dict(),
            "layout": self.layout.model_dump(mode="json", by_alias=True),
            "fixed": list(self.fixed),
        }


async def run_pipeline(
    context: PipelineContext,
    request: AnalysisRequest,
    *,
    auto_fix: bool = False,
    on_progress: ProgressSink | None = None,
) -> PipelineResult:
    """Analyze a document, lay it out and validate the layout.

    Args:
        context: Shared collaborators.
        request: Document to analyze.
        auto_fix: Apply fixable validation issues and re-validate.
        on_progress: Optional progress sink forwarded to the client.

    Returns:
        PipelineResult. Degraded analyses still produce a template.

    Raises:
        ValidationError: If the request is malformed.
        AnalysisError: If the network stage fails and fallback is disabled.
        asyncio.CancelledError: If the caller cancels; nothing is returned.
    """
    analysis = await context.client.analyze(request, on_progress=on_progress)

    layout = context.synthesizer.synthesize(analysis, context.page_config)
    report = context.validator.validate(layout.template)

    fixed: list[str] = []
    if auto_fix and any(issue.fixable for issue in report.issues):
        fixed = apply_fixes(layout.template, report)
        if fixed:
            report = context.validator.validate(layout.template)

    logger.info(
        f"Pipeline finished: success={analysis.success}, score={report.score}, "
        f"{len(layout.template.elements())} element(s), {len(fixed)} fix(es)"
    )
    return PipelineResult(
        analysis=analysis,
        template=layout.template,
        bindings=layout.bindings,
        report=report,
        layout=layout.metadata,
        fixed=fixed,
    )


__all__ = [
    "PipelineContext",
    "PipelineResult",
    "create_context",
    "run_pipeline",
]
