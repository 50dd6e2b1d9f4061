"""flux_engine: Durable step-by-step workflow execution."""

from .builder import WorkflowBuilder, create_workflow
from .config import FluxConfig, load_config
from .contracts import ExecutionContext, StepDefinition, StepOptions, WorkflowDefinition
from .engine import Engine, EngineHooks
from .errors import (
    DefinitionError,
    DuplicateStepNameError,
    EmptyWorkflowError,
    FluxError,
    InvalidCommitPlacementError,
    InvalidInputError,
    InvalidStateError,
    StepTimeoutError,
    WorkflowMismatchError,
)
from .logger import FluxLogger, SilentLogger, StdlibLogger
from .persistence import (
    InMemoryStorage,
    RunRecord,
    RunStatus,
    SQLiteStorage,
    StorageBackend,
    get_storage,
)
from .policy import RetryPolicy

__version__ = "0.1.0"
__all__ = [
    "DefinitionError",
    "DuplicateStepNameError",
    "EmptyWorkflowError",
    "Engine",
    "EngineHooks",
    "ExecutionContext",
    "FluxConfig",
    "FluxError",
    "FluxLogger",
    "InMemoryStorage",
    "InvalidCommitPlacementError",
    "InvalidInputError",
    "InvalidStateError",
    "RetryPolicy",
    "RunRecord",
    "RunStatus",
    "SQLiteStorage",
    "SilentLogger",
    "StdlibLogger",
    "StepDefinition",
    "StepOptions",
    "StepTimeoutError",
    "StorageBackend",
    "WorkflowBuilder",
    "WorkflowDefinition",
    "WorkflowMismatchError",
    "create_workflow",
    "get_storage",
    "load_config",
]
