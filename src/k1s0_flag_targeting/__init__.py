"""k1s0 flag targeting library."""

from .admin import FlagAdmin
from .client import FeatureFlagClientProtocol
from .config import FeatureFlagConfig, LogSection, StoreSection, create_store, load_config
from .evaluator import FlagEvaluator, decide
from .exceptions import (
    ConfigError,
    ConflictError,
    EvaluationError,
    FeatureFlagError,
    FeatureFlagErrorCodes,
    NotFoundError,
    StoreError,
    ValidationError,
)
from .file_store import FileFlagStore
from .logger import configure_logging
from .memory import InMemoryFlagStore
from .models import (
    EvaluationContext,
    EvaluationReason,
    EvaluationResult,
    Flag,
    Operator,
    Rule,
    Variation,
    VariationInput,
)
from .operators import matches
from .service import FeatureFlagService
from .store import FlagStore

__all__ = [
    "ConfigError",
    "ConflictError",
    "EvaluationContext",
    "EvaluationError",
    "EvaluationReason",
    "EvaluationResult",
    "FeatureFlagClientProtocol",
    "FeatureFlagConfig",
    "FeatureFlagError",
    "FeatureFlagErrorCodes",
    "FeatureFlagService",
    "FileFlagStore",
    "Flag",
    "FlagAdmin",
    "FlagEvaluator",
    "FlagStore",
    "InMemoryFlagStore",
    "LogSection",
    "NotFoundError",
    "Operator",
    "Rule",
    "StoreError",
    "StoreSection",
    "ValidationError",
    "Variation",
    "VariationInput",
    "configure_logging",
    "create_store",
    "decide",
    "load_config",
    "matches",
]
