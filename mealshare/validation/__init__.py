"""Record validation package."""

from mealshare.validation.validator import RecordValidator

__all__ = ["RecordValidator"]
