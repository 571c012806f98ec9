"""Data Quality Validators for harvested records."""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from jobharvest.config.parser_config import DETAIL_PATH_PATTERN
from jobharvest.config.quality_config import (
    DQ_MIN_RECORDS, DQ_MAX_DUPLICATE_RATE, DQ_MAX_STUB_RATE,
    DQ_SUCCESS_THRESHOLD, DQ_WARNING_THRESHOLD,
)
from jobharvest.data_sources.powertofly.models import JobRecord

logger = logging.getLogger(__name__)

TRACKED_FIELDS = ['title', 'company', 'location', 'date_posted', 'description_text']


@dataclass
class ValidationConfig:
    """Validation thresholds."""
    min_record_count: int = DQ_MIN_RECORDS
    hard_fail_duplicate_rate: float = DQ_MAX_DUPLICATE_RATE
    hard_fail_stub_rate: float = DQ_MAX_STUB_RATE
    success_threshold: float = DQ_SUCCESS_THRESHOLD
    warning_threshold: float = DQ_WARNING_THRESHOLD


@dataclass
class ValidationResult:
    """Validation result."""
    timestamp: datetime
    total_records: int
    unique_records: int
    duplicate_rate: float
    stub_records: int
    stub_rate: float
    valid_records: int
    valid_rate: float
    field_missing_rates: Dict[str, float] = field(default_factory=dict)


class RecordValidator:
    """Validator for record completeness.

    A record is valid when it carries job_id, url, title and company.
    """

    def __init__(self, config: ValidationConfig = None):
        self.config = config or ValidationConfig()

    def validate(self, records: List[JobRecord]) -> ValidationResult:
        """Run all validations on harvested records."""
        if not records:
            return ValidationResult(
                timestamp=datetime.now(), total_records=0, unique_records=0,
                duplicate_rate=0.0, stub_records=0, stub_rate=0.0,
                valid_records=0, valid_rate=0.0
            )

        total = len(records)
        unique = len(set(r.job_id for r in records if r.job_id))
        stubs = sum(1 for r in records if r.is_stub)

        missing = {name: 0 for name in TRACKED_FIELDS}
        valid_count = 0
        for record in records:
            for name in TRACKED_FIELDS:
                if getattr(record, name) is None:
                    missing[name] += 1
            if record.job_id and record.url and record.title and record.company:
                valid_count += 1

        result = ValidationResult(
            timestamp=datetime.now(),
            total_records=total,
            unique_records=unique,
            duplicate_rate=(total - unique) / total,
            stub_records=stubs,
            stub_rate=stubs / total,
            valid_records=valid_count,
            valid_rate=valid_count / total,
            field_missing_rates={k: v / total for k, v in missing.items()}
        )
        logger.info(f"Record validation: {total} records, {result.valid_rate:.1%} valid, {stubs} stubs")
        return result


@dataclass
class ContentRuleResult:
    """Content rule validation result."""
    timestamp: datetime
    total_records: int
    violations: Dict[str, int]  # rule_name -> count
    violation_rate: float
    status: str  # 'healthy', 'degraded', 'unhealthy'
    details: List[str] = field(default_factory=list)


def _parse_date(value: str) -> Optional[datetime]:
    try:
        return datetime.fromisoformat(value.replace('Z', '+00:00'))
    except (ValueError, AttributeError):
        return None


class ContentRuleValidator:
    """Validate content rules on non-stub records."""

    MIN_TITLE_LENGTH = 3
    MIN_DESCRIPTION_LENGTH = 50

    def validate(self, records: List[JobRecord]) -> ContentRuleResult:
        """Validate content rules; stubs are skipped."""
        records = [r for r in records if not r.is_stub]
        if not records:
            return ContentRuleResult(
                timestamp=datetime.now(), total_records=0,
                violations={}, violation_rate=0.0, status='healthy'
            )

        violations: Dict[str, int] = {
            'url_not_detail': 0,        # hard
            'title_too_short': 0,       # hard
            'description_missing': 0,   # hard
            'description_short': 0,     # warning
            'date_unparseable': 0,      # warning
        }
        details = []

        for record in records:
            if not record.url or not re.search(DETAIL_PATH_PATTERN, record.url):
                violations['url_not_detail'] += 1

            if len((record.title or '').strip()) < self.MIN_TITLE_LENGTH:
                violations['title_too_short'] += 1

            if not record.description_text:
                violations['description_missing'] += 1
            elif len(record.description_text) < self.MIN_DESCRIPTION_LENGTH:
                violations['description_short'] += 1

            if record.date_posted and _parse_date(record.date_posted) is None:
                violations['date_unparseable'] += 1

        hard_violations = (
            violations['url_not_detail'] + violations['title_too_short'] +
            violations['description_missing']
        )
        warning_violations = violations['description_short'] + violations['date_unparseable']

        total = len(records)
        violation_rate = hard_violations / total

        if violation_rate > 0.10:
            status = 'unhealthy'
        elif violation_rate > 0.05 or warning_violations > total * 0.10:
            status = 'degraded'
        else:
            status = 'healthy'

        if hard_violations > 0:
            details.append(f"Hard violations: {hard_violations}/{total}")
        if warning_violations > 0:
            details.append(f"Warnings: {warning_violations}/{total}")

        logger.info(f"Content rules: {total} records, {violation_rate:.1%} violations, status={status}")

        return ContentRuleResult(
            timestamp=datetime.now(),
            total_records=total,
            violations={k: v for k, v in violations.items() if v > 0},
            violation_rate=violation_rate,
            status=status,
            details=details
        )
