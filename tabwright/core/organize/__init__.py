"""Tab organization: prompts, assignment validation and the self-correction loop."""

from tabwright.core.organize.organizer import (
    MAX_ORGANIZE_ATTEMPTS,
    ConnectionCheck,
    OrganizationFailedError,
    TabOrganizer,
)
from tabwright.core.organize.prompts import STRATEGY_RUBRICS, normalize_strategy
from tabwright.core.organize.validation import (
    Assignment,
    Organization,
    TabGroup,
    ValidationFailure,
    check_reply,
    parse_assignments,
    validate_assignments,
)

__all__ = [
    "MAX_ORGANIZE_ATTEMPTS",
    "Assignment",
    "ConnectionCheck",
    "Organization",
    "OrganizationFailedError",
    "STRATEGY_RUBRICS",
    "TabGroup",
    "TabOrganizer",
    "ValidationFailure",
    "check_reply",
    "normalize_strategy",
    "parse_assignments",
    "validate_assignments",
]
