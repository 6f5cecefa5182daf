"""
Schema validation for the records that cross the engine boundary.

Exercise settings arrive from the Settings Source; level state, earned
rewards and progress entries are read from and written to stores. Each
record kind has a Draft 7 schema under ``schemas/<record>.schema.json``.

Features:
- Draft 7 validation with format checking
- Optional repair: unknown keys dropped, string scalars coerced to the
  schema type, applied to a deep copy so callers' data is never mutated
- Record-level checks the schema cannot express (duplicate reward ids,
  score above the problem count)
"""

import json
from copy import deepcopy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from jsonschema import Draft7Validator, FormatChecker, ValidationError

from ..config import config

_TRUE_FALSE = {"true": True, "false": False}


@dataclass
class ValidationResult:
    """
    Outcome of validating one record.

    Attributes:
        valid: Whether the record passed
        errors: "<field>: <problem>" messages
        data: The validated record (the repaired copy when repair ran)
        repairs: Repairs applied, one message each
    """

    valid: bool
    errors: list[str]
    data: Any = None
    repairs: list[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.valid


def _coerce_scalar(value: str, expected: Any) -> Any:
    """Convert a string to the schema's scalar type; returns the input when it cannot."""
    text = value.strip()
    try:
        if expected == "integer":
            return int(float(text))
        if expected == "number":
            return float(text)
    except ValueError:
        return value
    if expected == "boolean" and text.lower() in _TRUE_FALSE:
        return _TRUE_FALSE[text.lower()]
    return value


class SchemaValidator:
    """
    Validates one record kind against its schema.

    Subclasses add record-level rules by overriding ``check``.

    Usage:
        result = SchemaValidator("level_state").validate(payload)
        if not result:
            logger.warning("Corrupt level state: {}", result.errors)
    """

    def __init__(self, record: str, schema_path: Optional[Path | str] = None):
        self.record = record
        self.schema_path = Path(schema_path or config.paths.schemas_dir / f"{record}.schema.json")
        with open(self.schema_path, "r", encoding="utf-8") as f:
            self.schema = json.load(f)
        self.validator = Draft7Validator(self.schema, format_checker=FormatChecker())

    def validate(self, data: dict, auto_repair: bool = False) -> ValidationResult:
        """
        Validate a record, optionally repairing a copy first.

        Repair is only attempted when the record as given is invalid.
        """
        errors = self._schema_errors(data)
        repairs: list[str] = []
        if errors and auto_repair and isinstance(data, dict):
            data = deepcopy(data)
            self._repair(data, self.schema, self.record, repairs)
            errors = self._schema_errors(data)

        if not errors:
            errors = self.check(data)
        return ValidationResult(valid=not errors, errors=errors, data=data, repairs=repairs)

    def check(self, data: dict) -> list[str]:
        """Record-level rules applied after the schema passes."""
        return []

    def _schema_errors(self, data: Any) -> list[str]:
        return [self._describe(error) for error in self.validator.iter_errors(data)]

    def _describe(self, error: ValidationError) -> str:
        where = ".".join(str(p) for p in error.absolute_path) or self.record
        return f"{where}: {error.message}"

    def _repair(self, obj: Any, schema: dict, where: str, repairs: list[str]) -> None:
        if isinstance(obj, list) and isinstance(schema.get("items"), dict):
            for i, item in enumerate(obj):
                self._repair(item, schema["items"], f"{where}[{i}]", repairs)
            return
        if not isinstance(obj, dict):
            return

        properties = schema.get("properties", {})
        if schema.get("additionalProperties") is False:
            for key in [k for k in obj if k not in properties]:
                del obj[key]
                repairs.append(f"{where}: dropped unknown key '{key}'")

        for key, subschema in properties.items():
            if key not in obj:
                continue
            value = obj[key]
            if isinstance(value, str) and subschema.get("type") in ("integer", "number", "boolean"):
                coerced = _coerce_scalar(value, subschema["type"])
                if coerced is not value:
                    obj[key] = coerced
                    repairs.append(f"{where}.{key}: coerced '{value}' to {coerced!r}")
            else:
                self._repair(value, subschema, f"{where}.{key}", repairs)


class RewardStateValidator(SchemaValidator):
    """Earned-reward sets: a reward id may be held only once."""

    def __init__(self, schema_path: Optional[Path] = None):
        super().__init__("reward_state", schema_path)

    def check(self, data: dict) -> list[str]:
        ids = [entry["id"] for entry in data.get("earned", [])]
        duplicates = sorted({rid for rid in ids if ids.count(rid) > 1})
        if duplicates:
            return [f"earned: duplicate reward ids {', '.join(duplicates)}"]
        return []


class ProgressEntryValidator(SchemaValidator):
    """Progress Store entries: the score never exceeds the problem count."""

    def __init__(self, schema_path: Optional[Path] = None):
        super().__init__("progress_entry", schema_path)

    def check(self, data: dict) -> list[str]:
        if data["score"] > data["totalProblems"]:
            return [f"score: {data['score']} is above totalProblems ({data['totalProblems']})"]
        return []


_validators: dict[str, SchemaValidator] = {}

_FACTORIES = {
    "settings": lambda: SchemaValidator("exercise_settings"),
    "level_state": lambda: SchemaValidator("level_state"),
    "reward_state": RewardStateValidator,
    "progress_entry": ProgressEntryValidator,
}


def get_validator(name: str) -> SchemaValidator:
    """
    Get a cached validator by record name.

    Args:
        name: One of "settings", "level_state", "reward_state", "progress_entry"
    """
    if name not in _validators:
        if name not in _FACTORIES:
            raise KeyError(f"Unknown validator: {name}")
        _validators[name] = _FACTORIES[name]()
    return _validators[name]


def validate_settings(data: dict, auto_repair: bool = True) -> ValidationResult:
    """
    Validate an exercise settings record, repairing by default.

    Example:
        result = validate_settings({"difficulty": "beginner", "problem_count": "5", ...})
        result.data["problem_count"]  # 5
    """
    return get_validator("settings").validate(data, auto_repair=auto_repair)


def validate_progress_entry(data: dict) -> ValidationResult:
    """Validate a Progress Store entry (no repair)."""
    return get_validator("progress_entry").validate(data, auto_repair=False)
