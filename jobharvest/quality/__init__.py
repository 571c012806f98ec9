"""Quality module - Record validation and quality gates."""

from .validators import (
    RecordValidator, ContentRuleValidator,
    ValidationConfig, ValidationResult, ContentRuleResult
)
from .gates import QualityGate, GateResult, ValidationHardFailError

__all__ = [
    'RecordValidator', 'ContentRuleValidator',
    'ValidationConfig', 'ValidationResult', 'ContentRuleResult',
    'QualityGate', 'GateResult', 'ValidationHardFailError',
]
