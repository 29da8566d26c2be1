"""
Stage 1: ICP Matching
=====================
Deterministic scoring of a raw event against the Ideal Customer Profile.
No I/O after construction; the same event always yields the same match.

Criteria evaluated:
- Excluded companies (short-circuit to score 0)
- Target roles (author role, or author as fallback)
- Content relevance (weighted high/medium term lists)
- Tech stack mentions
- Industry mentions
- Custom field rules (contains / equals / regex / gt / lt)
"""

import logging
import math
import re
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Union

from ..config.settings import (
    HIGH_SIGNAL_TERMS,
    HIGH_SIGNAL_WEIGHT,
    MEDIUM_SIGNAL_TERMS,
    MEDIUM_SIGNAL_WEIGHT,
)
from ..models.icp_config import ICPCriteria, ICPCustomRule, RuleOperator, load_icp_criteria
from ..models.schemas import CompanyMatch, RawEvent

UNKNOWN_COMPANY = "Unknown"

FieldAccessor = Callable[[RawEvent, str], str]

_NUMERIC_PREFIX = re.compile(r"^\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")
_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def _stringify(value) -> str:
    if value is None:
        return ""
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return ",".join(_stringify(v) for v in value)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def default_field_accessor(event: RawEvent, field_name: str) -> str:
    """
    Resolve a field on a raw event as a string.

    Looks up the attribute by name (camelCase names are also tried in
    snake_case), then falls back to the event's metadata. Missing fields
    resolve to an empty string.
    """
    candidates = [field_name, _CAMEL_BOUNDARY.sub("_", field_name).lower()]
    for candidate in candidates:
        if candidate in RawEvent.model_fields:
            return _stringify(getattr(event, candidate))
    if field_name in event.metadata:
        return _stringify(event.metadata[field_name])
    return ""


def parse_number(value) -> float:
    """Parse the leading number of a value; NaN when there is none"""
    if isinstance(value, bool):
        return math.nan
    if isinstance(value, (int, float)):
        return float(value)
    match = _NUMERIC_PREFIX.match(str(value))
    if not match:
        return math.nan
    return float(match.group(0))


class ICPMatcher:
    """
    Stage 1: Score raw events against ICP criteria.
    """

    def __init__(
        self,
        criteria: Union[ICPCriteria, str, Path],
        field_accessor: Optional[FieldAccessor] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize with ICP criteria or a path to the criteria JSON file.

        Raises:
            ICPConfigError: if a path is given and cannot be loaded.
        """
        self.logger = logger or logging.getLogger(__name__)
        if isinstance(criteria, ICPCriteria):
            self.criteria = criteria
        else:
            self.criteria = load_icp_criteria(criteria)
        self.field_accessor = field_accessor or default_field_accessor

        self._excluded = {c.lower() for c in self.criteria.exclude_companies}
        self.logger.info(
            'ICP criteria loaded: "%s" with %d industries',
            self.criteria.name,
            len(self.criteria.industries),
        )

    def match(self, event: RawEvent) -> CompanyMatch:
        """
        Match a raw event against the ICP.

        Args:
            event: Raw event to score

        Returns:
            CompanyMatch with score = matched / (matched + unmatched)
        """
        company_name = event.company_hint or UNKNOWN_COMPANY
        matched: List[str] = []
        unmatched: List[str] = []

        # Check 1: Excluded companies
        if company_name.lower() in self._excluded:
            return CompanyMatch(
                company_name=company_name,
                match_score=0,
                matched_criteria=[],
                unmatched_criteria=["excluded_company"],
            )

        text = event.text

        # Check 2: Target roles
        if self.criteria.target_roles:
            role = (event.author_role or event.author or "").lower()
            if any(r.lower() in role for r in self.criteria.target_roles):
                matched.append("target_role")
            else:
                unmatched.append("target_role")

        # Check 3: Content relevance
        relevance = self.score_content_relevance(text)
        if relevance >= 0.5:
            matched.append("content_relevance_high")
        elif relevance >= 0.25:
            matched.append("content_relevance_medium")
        else:
            unmatched.append("content_relevance")

        # Check 4: Tech stack
        if self.criteria.tech_stack:
            tech_matches = [t for t in self.criteria.tech_stack if t.lower() in text]
            if tech_matches:
                matched.append(f"tech_stack:{','.join(tech_matches)}")
            else:
                unmatched.append("tech_stack")

        # Check 5: Industry
        if self.criteria.industries:
            if any(ind.lower() in text for ind in self.criteria.industries):
                matched.append("industry_signal")
            else:
                unmatched.append("industry_signal")

        # Check 6: Custom rules
        for rule in self.criteria.custom_rules:
            label = f"custom:{rule.field}:{rule.operator.value}"
            if self.evaluate_custom_rule(rule, event):
                matched.append(label)
            else:
                unmatched.append(label)

        total = len(matched) + len(unmatched)
        score = len(matched) / total if total > 0 else 0.0

        return CompanyMatch(
            company_name=company_name,
            match_score=round(score, 2),
            matched_criteria=matched,
            unmatched_criteria=unmatched,
        )

    def score_content_relevance(self, text: str) -> float:
        """Weighted keyword score over lower-cased text, capped at 1.0"""
        score = 0.0
        for term in HIGH_SIGNAL_TERMS:
            if term in text:
                score += HIGH_SIGNAL_WEIGHT
        for term in MEDIUM_SIGNAL_TERMS:
            if term in text:
                score += MEDIUM_SIGNAL_WEIGHT
        return round(min(score, 1.0), 4)

    def evaluate_custom_rule(self, rule: ICPCustomRule, event: RawEvent) -> bool:
        """Evaluate one custom rule; never raises"""
        field_value = self.field_accessor(event, rule.field)
        rule_value = _stringify(rule.value)

        if rule.operator == RuleOperator.CONTAINS:
            return rule_value.lower() in field_value.lower()
        if rule.operator == RuleOperator.EQUALS:
            return field_value.lower() == rule_value.lower()
        if rule.operator == RuleOperator.REGEX:
            try:
                return re.search(rule_value, field_value, re.IGNORECASE) is not None
            except re.error:
                self.logger.debug("Invalid regex in custom rule %s: %r", rule.field, rule_value)
                return False
        if rule.operator == RuleOperator.GT:
            return parse_number(field_value) > _to_number(rule.value)
        if rule.operator == RuleOperator.LT:
            return parse_number(field_value) < _to_number(rule.value)
        return False


def _to_number(value) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    try:
        return float(str(value))
    except ValueError:
        return math.nan
