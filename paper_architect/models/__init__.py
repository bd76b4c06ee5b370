"""Provider adapters and the generation gateway."""

from paper_architect.models.gateway import (
    GenerationGateway,
    GenerationStream,
    generate,
    is_google_endpoint,
    select_adapter,
)
from paper_architect.models.types import (
    GenerationRequest,
    ProviderConfig,
    StreamTermination,
    WorkflowStep,
)

__all__ = [
    "GenerationGateway",
    "GenerationStream",
    "GenerationRequest",
    "ProviderConfig",
    "StreamTermination",
    "WorkflowStep",
    "generate",
    "is_google_endpoint",
    "select_adapter",
]
