"""Quality Gate - Decision maker for pass/fail."""

import logging
from dataclasses import dataclass

from .validators import ValidationResult, ValidationConfig

logger = logging.getLogger(__name__)


class ValidationHardFailError(Exception):
    """Raised when validation fails hard."""
    pass


@dataclass
class GateResult:
    """Quality gate result."""
    status: str  # 'success', 'warning', 'failed'
    valid_rate: float
    message: str


class QualityGate:
    """Decision maker for pass/fail based on validation results."""

    def __init__(self, config: ValidationConfig = None):
        self.config = config or ValidationConfig()

    def evaluate(self, result: ValidationResult) -> GateResult:
        """Evaluate validation result. Raises ValidationHardFailError on hard fail."""

        if result.total_records == 0:
            raise ValidationHardFailError('No records harvested')

        if result.total_records < self.config.min_record_count:
            raise ValidationHardFailError(
                f'Record count {result.total_records} below minimum {self.config.min_record_count}'
            )

        if result.duplicate_rate > self.config.hard_fail_duplicate_rate:
            raise ValidationHardFailError(f'Duplicate rate {result.duplicate_rate:.1%} too high')

        if result.stub_rate > self.config.hard_fail_stub_rate:
            raise ValidationHardFailError(f'Stub rate {result.stub_rate:.1%} too high')

        if result.valid_rate < self.config.warning_threshold:
            raise ValidationHardFailError(f'Valid rate {result.valid_rate:.1%} below threshold')

        if result.valid_rate < self.config.success_threshold:
            logger.warning(f'Valid rate {result.valid_rate:.1%} - warning')
            return GateResult('warning', result.valid_rate, f'Warning: {result.valid_rate:.1%} valid')

        logger.info(f'Validation passed: {result.valid_rate:.1%} valid')
        return GateResult('success', result.valid_rate, f'Passed: {result.valid_rate:.1%} valid')
