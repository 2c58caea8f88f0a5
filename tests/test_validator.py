"""
Tests for dataset validation.

Covers required collections, metadata checks, duplicate ids,
non-object records and dangling partner references.
"""

import pytest

from trackersync.core.dataset.templates import COLLECTIONS, empty_dataset
from trackersync.core.errors import ValidationError
from trackersync.core.integrity.validator import validate_dataset


class TestStructure:
    """Top-level shape checks."""

    def test_valid_dataset(self, sample_dataset):
        """A well-formed dataset passes with no errors or warnings."""
        result = validate_dataset(sample_dataset)
        assert result.is_valid is True
        assert result.errors == []
        assert result.warnings == []

    def test_empty_dataset_is_valid(self):
        """A freshly initialized dataset is valid."""
        assert validate_dataset(empty_dataset()).is_valid is True

    @pytest.mark.parametrize("value", [None, [], "data", 42])
    def test_non_object_rejected(self, value):
        """Anything other than a dict fails immediately."""
        result = validate_dataset(value)
        assert result.is_valid is False
        assert result.errors == ["Data must be a valid object"]

    @pytest.mark.parametrize("name", COLLECTIONS)
    def test_missing_collection_named(self, sample_dataset, name):
        """Dropping any collection fails with an error naming it."""
        del sample_dataset[name]
        result = validate_dataset(sample_dataset)
        assert result.is_valid is False
        assert f"{name} must be an array" in result.errors

    def test_collection_wrong_type(self, sample_dataset):
        """A collection that is not a list is an error."""
        sample_dataset["sales"] = {"1": {"id": 1}}
        result = validate_dataset(sample_dataset)
        assert result.errors == ["sales must be an array"]

    def test_missing_metadata(self, sample_dataset):
        """Metadata is required."""
        del sample_dataset["metadata"]
        result = validate_dataset(sample_dataset)
        assert "Metadata is required" in result.errors

    def test_missing_next_ids(self, sample_dataset):
        """Metadata without nextIds is rejected."""
        del sample_dataset["metadata"]["nextIds"]
        result = validate_dataset(sample_dataset)
        assert result.errors == ["Metadata nextIds is required"]

    def test_non_object_records(self, sample_dataset):
        """Records that are not objects are counted in the error."""
        sample_dataset["expenses"] = [{"id": 1}, "rent", 12]
        result = validate_dataset(sample_dataset)
        assert result.errors == ["expenses contains 2 non-object records"]

    def test_does_not_mutate_input(self, sample_dataset):
        """Validation is side-effect free."""
        before = repr(sample_dataset)
        validate_dataset(sample_dataset)
        assert repr(sample_dataset) == before


class TestDuplicateIds:
    """Duplicate identifier detection."""

    def test_duplicate_withdrawals(self, sample_dataset):
        """Two withdrawals sharing an id fail validation."""
        sample_dataset["withdrawals"].append({"id": "W1", "partnerId": "P1", "amount": 5})
        result = validate_dataset(sample_dataset)
        assert result.is_valid is False
        assert "Duplicate withdrawal IDs found" in result.errors

    def test_duplicate_partners(self, sample_dataset):
        sample_dataset["partners"].append({"id": "P1", "name": "Ana again"})
        assert "Duplicate partner IDs found" in validate_dataset(sample_dataset).errors

    def test_duplicate_cash_injections(self, sample_dataset):
        sample_dataset["cashInjections"].append(dict(sample_dataset["cashInjections"][0]))
        assert "Duplicate cash injection IDs found" in validate_dataset(sample_dataset).errors

    def test_duplicate_operational_ids(self, sample_dataset):
        """Operational collections get the same check."""
        sample_dataset["products"].append({"id": 1, "name": "Trail"})
        assert "Duplicate product IDs found" in validate_dataset(sample_dataset).errors

    def test_records_without_id_are_not_duplicates(self, sample_dataset):
        """Missing ids are the sanitizer's job, not a duplicate."""
        sample_dataset["cashFlows"] = [{"amount": 1}, {"amount": 2}]
        assert validate_dataset(sample_dataset).is_valid is True


class TestPartnerReferences:
    """Dangling partner references produce warnings only."""

    def test_dangling_withdrawal_warns(self, sample_dataset):
        """A withdrawal for an unknown partner is valid with a warning."""
        sample_dataset["withdrawals"].append({"id": "W2", "partnerId": "P9", "amount": 5})
        result = validate_dataset(sample_dataset)
        assert result.is_valid is True
        assert result.warnings == ["1 withdrawals reference non-existent partners"]

    def test_dangling_capital_contribution_warns(self, sample_dataset):
        sample_dataset["cashInjections"].append(
            {"id": "CI2", "partnerId": "P7", "amount": 5, "type": "Capital Contribution"}
        )
        result = validate_dataset(sample_dataset)
        assert result.is_valid is True
        assert result.warnings == ["1 capital contributions reference non-existent partners"]

    def test_other_injection_types_not_checked(self, sample_dataset):
        """Only capital contributions must reference a partner."""
        sample_dataset["cashInjections"].append(
            {"id": "CI2", "partnerId": "P7", "amount": 5, "type": "Loan"}
        )
        assert validate_dataset(sample_dataset).warnings == []

    def test_missing_partner_id_not_checked(self, sample_dataset):
        """The partner reference is optional."""
        sample_dataset["withdrawals"].append({"id": "W2", "amount": 5})
        assert validate_dataset(sample_dataset).warnings == []


class TestRaiseForErrors:
    """ValidationResult.raise_for_errors() for exception-style callers."""

    def test_valid_result_does_not_raise(self, sample_dataset):
        validate_dataset(sample_dataset).raise_for_errors()

    def test_warnings_alone_do_not_raise(self, sample_dataset):
        sample_dataset["withdrawals"][0]["partnerId"] = "P9"
        result = validate_dataset(sample_dataset)
        assert result.warnings
        result.raise_for_errors()

    def test_invalid_result_raises(self, sample_dataset):
        sample_dataset["withdrawals"].append({"id": "W1", "partnerId": "P1", "amount": 5})
        del sample_dataset["sales"]

        with pytest.raises(ValidationError) as exc_info:
            validate_dataset(sample_dataset).raise_for_errors()

        assert "Duplicate withdrawal IDs found" in exc_info.value.errors
        assert str(exc_info.value) == ", ".join(exc_info.value.errors)
