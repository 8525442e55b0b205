"""ToonCraft orchestration core: resilient multi-provider generation of cartoon productions."""

from .cancellation import CancellationToken
from .credentials import CredentialPool
from .errors import (
    AllProvidersFailedError,
    Cancelled,
    ContentSafetyRejected,
    InvalidCredentialOrRequest,
    MalformedScriptError,
    MalformedUpstreamResponse,
    OperationError,
    PermanentError,
    QuotaExceeded,
    TransientServerError,
)
from .fallback import FallbackExecutor
from .models import GenerationProgress, ProductionRequest, ProductionStage, ProductionState, Scene, Script
from .pipeline import (
    AlternatingVideoPolicy,
    ProductionController,
    ProductionPipeline,
    ProductionRun,
    StillsOnlyPolicy,
)
from .retry import RetryPolicy
from .service import GenerativeMediaService

__all__ = [
    "AllProvidersFailedError",
    "AlternatingVideoPolicy",
    "CancellationToken",
    "Cancelled",
    "ContentSafetyRejected",
    "CredentialPool",
    "FallbackExecutor",
    "GenerationProgress",
    "GenerativeMediaService",
    "InvalidCredentialOrRequest",
    "MalformedScriptError",
    "MalformedUpstreamResponse",
    "OperationError",
    "PermanentError",
    "ProductionController",
    "ProductionPipeline",
    "ProductionRequest",
    "ProductionRun",
    "ProductionStage",
    "ProductionState",
    "QuotaExceeded",
    "RetryPolicy",
    "Scene",
    "Script",
    "StillsOnlyPolicy",
    "TransientServerError",
]
