"""
ICP Configuration Models
"""

import json
from enum import Enum
from pathlib import Path
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from ..errors import ICPConfigError


class RuleOperator(str, Enum):
    """Comparison operators for custom ICP rules"""
    CONTAINS = "contains"
    EQUALS = "equals"
    REGEX = "regex"
    GT = "gt"
    LT = "lt"


class ICPCustomRule(BaseModel):
    """A single field-level rule evaluated against a raw event"""
    field: str
    operator: RuleOperator
    value: Union[str, float, int]


class ICPCriteria(BaseModel):
    """Ideal Customer Profile criteria, loaded once per matcher"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str = "Default ICP"
    industries: List[str] = Field(default_factory=list)
    min_employees: Optional[int] = None
    max_employees: Optional[int] = None
    min_revenue: Optional[float] = None  # USD millions
    max_revenue: Optional[float] = None
    geographies: List[str] = Field(default_factory=list)
    tech_stack: List[str] = Field(default_factory=list)
    target_roles: List[str] = Field(default_factory=list)
    exclude_companies: List[str] = Field(default_factory=list)
    custom_rules: List[ICPCustomRule] = Field(default_factory=list)


def load_icp_criteria(path: Union[str, Path]) -> ICPCriteria:
    """
    Load ICP criteria from a JSON file.

    Raises:
        ICPConfigError: if the file is missing, unreadable, or does not match
            the ICPCriteria shape.
    """
    config_path = Path(path)
    try:
        raw = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ICPConfigError(f"Cannot read ICP config {config_path}: {exc}") from exc

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ICPConfigError(f"ICP config {config_path} is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise ICPConfigError(f"ICP config {config_path} must be a JSON object")

    try:
        return ICPCriteria.model_validate(data)
    except ValidationError as exc:
        raise ICPConfigError(f"ICP config {config_path} is invalid: {exc}") from exc
