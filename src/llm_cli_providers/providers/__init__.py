"""CLI provider execution: engine, classifier and per-tool facades."""

from llm_cli_providers.providers.classifier import classify_failure
from llm_cli_providers.providers.engine import CancellationToken, ExecutionEngine
from llm_cli_providers.providers.errors import ErrorKind, ProviderError
from llm_cli_providers.providers.facade import CliProvider
from llm_cli_providers.providers.models import (
    Command,
    ExecutionState,
    LlmRequest,
    LlmResponse,
    Message,
    ProcessResult,
    ProgressUpdate,
    RequestOptions,
    Role,
)
from llm_cli_providers.providers.registry import (
    SUPPORTED_PROVIDERS,
    ProviderStatus,
    build_provider,
    detect_providers,
)

__all__ = [
    "SUPPORTED_PROVIDERS",
    "CancellationToken",
    "CliProvider",
    "Command",
    "ErrorKind",
    "ExecutionEngine",
    "ExecutionState",
    "LlmRequest",
    "LlmResponse",
    "Message",
    "ProcessResult",
    "ProgressUpdate",
    "ProviderError",
    "ProviderStatus",
    "RequestOptions",
    "Role",
    "build_provider",
    "classify_failure",
    "detect_providers",
]
