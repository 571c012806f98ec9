"""Unit tests for data quality validators."""
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from jobharvest.data_sources.powertofly.models import JobRecord
from jobharvest.quality.validators import RecordValidator, ContentRuleValidator, ValidationConfig
from jobharvest.quality.gates import QualityGate, ValidationHardFailError

BASE = "https://powertofly.com/jobs/detail/"
DESCRIPTION = "We are looking for an engineer to build and run our data platform end to end."


def record(job_id, **kwargs):
    fields = {
        "title": "Python Developer",
        "company": "Acme",
        "description_text": DESCRIPTION,
    }
    fields.update(kwargs)
    return JobRecord(job_id=job_id, url=f"{BASE}{job_id}", **fields)


class TestRecordValidator:
    """Tests for RecordValidator."""

    def setup_method(self):
        """Setup test fixtures."""
        self.validator = RecordValidator()
        self.valid_records = [record("1"), record("2"), record("3")]

    def test_validate_returns_correct_total(self):
        """Should return correct total record count."""
        result = self.validator.validate(self.valid_records)
        assert result.total_records == 3

    def test_validate_returns_correct_valid_rate(self):
        """Should return 100% valid rate for valid records."""
        result = self.validator.validate(self.valid_records)
        assert result.valid_rate == 1.0

    def test_validate_detects_missing_title(self):
        """Should detect missing title."""
        result = self.validator.validate([record("1", title=None)])
        assert result.valid_rate == 0.0
        assert result.field_missing_rates['title'] == 1.0

    def test_validate_detects_missing_company(self):
        """Should detect missing company."""
        result = self.validator.validate([record("1", company="")])
        assert result.valid_rate == 0.0

    def test_validate_counts_stubs(self):
        """Should count stub records."""
        records = [record("1"), JobRecord.stub(f"{BASE}2")]
        result = self.validator.validate(records)
        assert result.stub_records == 1
        assert result.stub_rate == 0.5

    def test_validate_calculates_duplicate_rate(self):
        """Should calculate duplicate rate correctly."""
        records = [record("123"), record("123"), record("456")]
        result = self.validator.validate(records)
        assert result.duplicate_rate == pytest.approx(1/3, rel=0.01)

    def test_validate_empty_list(self):
        """Should handle empty record list."""
        result = self.validator.validate([])
        assert result.total_records == 0
        assert result.valid_rate == 0.0


class TestContentRuleValidator:
    """Tests for ContentRuleValidator."""

    def setup_method(self):
        """Setup test fixtures."""
        self.validator = ContentRuleValidator()

    def test_validate_healthy_records(self):
        """Should return healthy status for complete records."""
        result = self.validator.validate([record("1", date_posted="2024-05-01")])
        assert result.status == 'healthy'
        assert result.violation_rate == 0.0

    def test_validate_detects_short_title(self):
        """Should detect title shorter than 3 chars."""
        result = self.validator.validate([record("1", title="QA")])
        assert result.violations.get('title_too_short', 0) == 1

    def test_validate_detects_missing_description(self):
        """Should detect missing description."""
        result = self.validator.validate([record("1", description_text=None)])
        assert result.violations.get('description_missing', 0) == 1

    def test_validate_detects_short_description(self):
        """Should warn on a very short description."""
        result = self.validator.validate([record("1", description_text="Apply now")])
        assert result.violations.get('description_short', 0) == 1

    def test_validate_detects_unparseable_date(self):
        """Should warn on a non-ISO date."""
        result = self.validator.validate([record("1", date_posted="3 days ago")])
        assert result.violations.get('date_unparseable', 0) == 1

    def test_validate_detects_non_detail_url(self):
        """Should flag URLs that are not detail pages."""
        bad = JobRecord(job_id="x", url="https://powertofly.com/jobs/", title="Python Developer",
                        description_text=DESCRIPTION)
        result = self.validator.validate([bad])
        assert result.violations.get('url_not_detail', 0) == 1

    def test_validate_skips_stubs(self):
        """Should ignore stub records."""
        result = self.validator.validate([JobRecord.stub(f"{BASE}1")])
        assert result.total_records == 0
        assert result.status == 'healthy'

    def test_validate_unhealthy_status(self):
        """Should return unhealthy when >10% violations."""
        records = [record(str(i), title="QA", description_text=None) for i in range(10)]
        result = self.validator.validate(records)
        assert result.status == 'unhealthy'

    def test_validate_empty_list(self):
        """Should handle empty record list."""
        result = self.validator.validate([])
        assert result.total_records == 0
        assert result.status == 'healthy'


class TestQualityGate:
    """Tests for QualityGate."""

    def setup_method(self):
        """Setup test fixtures."""
        self.gate = QualityGate()
        self.validator = RecordValidator()

    def test_success(self):
        """Should pass complete records."""
        result = self.validator.validate([record(str(i)) for i in range(10)])
        assert self.gate.evaluate(result).status == 'success'

    def test_warning_band(self):
        """Should warn between the warning and success thresholds."""
        records = [record(str(i)) for i in range(8)] + [record("8", company=None), record("9", company=None)]
        result = self.validator.validate(records)
        assert self.gate.evaluate(result).status == 'warning'

    def test_no_records_hard_fails(self):
        """Should hard fail on an empty harvest."""
        with pytest.raises(ValidationHardFailError):
            self.gate.evaluate(self.validator.validate([]))

    def test_stub_rate_hard_fails(self):
        """Should hard fail when most records are stubs."""
        records = [record("1")] + [JobRecord.stub(f"{BASE}{i}") for i in range(2, 5)]
        with pytest.raises(ValidationHardFailError):
            self.gate.evaluate(self.validator.validate(records))

    def test_duplicate_rate_hard_fails(self):
        """Should hard fail on many duplicates."""
        records = [record("1") for _ in range(5)]
        with pytest.raises(ValidationHardFailError):
            self.gate.evaluate(self.validator.validate(records))

    def test_min_record_count(self):
        """Should hard fail below the configured minimum."""
        gate = QualityGate(ValidationConfig(min_record_count=5))
        with pytest.raises(ValidationHardFailError):
            gate.evaluate(self.validator.validate([record("1")]))
