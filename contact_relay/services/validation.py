"""
Field validation for contact form submissions.

Rules are declared as a table: each field has a normalizer and an ordered
list of ``Rule(predicate, message)`` pairs. Every field is evaluated; a
field contributes at most one message (its first failing rule), so the
caller gets the complete list of problems in one round trip.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable, List, Mapping, Optional, Tuple

from email_validator import EmailNotValidError, validate_email

from contact_relay.schemas.contact import ContactSubmission

FULL_NAME = "nombreCompleto"
EMAIL = "correoElectronico"
PHONE = "telefono"
SUBJECT = "asunto"
MESSAGE = "mensaje"

MAX_FULL_NAME_LENGTH = 100
MAX_SUBJECT_LENGTH = 150
MIN_MESSAGE_LENGTH = 10
MAX_MESSAGE_LENGTH = 1000

# Separators people type inside phone numbers: "+591 (2) 123-4567"
_PHONE_SEPARATORS_RE = re.compile(r"[\s().\-/]")
# E.164 allows at most 15 digits; 7 covers the shortest national mobiles.
# National numbers may start with a trunk 0, international ones may not.
_PHONE_RE = re.compile(r"^(\+[1-9]\d{6,14}|\d{7,15})$")
# A line break plus the whitespace around it
_LINE_BREAK_RE = re.compile(r"\s*[\r\n]+\s*")


@dataclass(frozen=True)
class Rule:
    predicate: Callable[[str], bool]
    message: str

    def check(self, value: str) -> Optional[str]:
        return None if self.predicate(value) else self.message


@dataclass(frozen=True)
class FieldRules:
    name: str
    rules: Tuple[Rule, ...]
    normalize: Callable[[str], str] = str.strip

    def evaluate(self, value: str) -> Optional[str]:
        for rule in self.rules:
            error = rule.check(value)
            if error is not None:
                return error
        return None


@dataclass
class ValidationResult:
    submission: Optional[ContactSubmission] = None
    errors: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.submission is not None and not self.errors


def normalize_single_line(value: str) -> str:
    """Trim and fold line breaks into one space; the value ends up in a mail header."""
    return _LINE_BREAK_RE.sub(" ", value.strip())


def normalize_email(value: str) -> str:
    """Canonical form of an address, or the trimmed input if it is not one."""
    value = value.strip()
    try:
        validated = validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        return value
    local_part, _, domain = validated.normalized.rpartition("@")
    return f"{local_part.lower()}@{domain}"


def is_email(value: str) -> bool:
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def is_mobile_phone(value: str) -> bool:
    """Permissive international mobile number check."""
    return bool(_PHONE_RE.match(_PHONE_SEPARATORS_RE.sub("", value)))


def _required(value: str) -> bool:
    return bool(value)


def _max_length(limit: int) -> Callable[[str], bool]:
    return lambda value: len(value) <= limit


def _length_between(low: int, high: int) -> Callable[[str], bool]:
    return lambda value: low <= len(value) <= high


CONTACT_RULES: Tuple[FieldRules, ...] = (
    FieldRules(
        FULL_NAME,
        (
            Rule(_required, "El nombre completo es requerido"),
            Rule(_max_length(MAX_FULL_NAME_LENGTH), "El nombre completo es muy largo"),
        ),
    ),
    FieldRules(
        EMAIL,
        (Rule(is_email, "Correo electrónico inválido"),),
        normalize=normalize_email,
    ),
    FieldRules(
        PHONE,
        (
            Rule(_required, "El teléfono es requerido"),
            Rule(is_mobile_phone, "Teléfono inválido"),
        ),
    ),
    FieldRules(
        SUBJECT,
        (
            Rule(_required, "El asunto es requerido"),
            Rule(_max_length(MAX_SUBJECT_LENGTH), "El asunto es muy largo"),
        ),
        normalize=normalize_single_line,
    ),
    FieldRules(
        MESSAGE,
        (
            Rule(_required, "El mensaje es requerido"),
            Rule(
                _length_between(MIN_MESSAGE_LENGTH, MAX_MESSAGE_LENGTH),
                "El mensaje debe tener entre 10 y 1000 caracteres",
            ),
        ),
    ),
)


def _coerce(value: Any) -> str:
    # JSON scalars are stringified the way a form would send them;
    # null, objects and arrays count as missing.
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return ""


def validate_submission(
    raw: Mapping[str, Any],
    rules: Tuple[FieldRules, ...] = CONTACT_RULES,
) -> ValidationResult:
    """Apply ``rules`` to a raw JSON body; never raises for bad input."""
    cleaned = {}
    errors = []
    for field_rules in rules:
        value = field_rules.normalize(_coerce(raw.get(field_rules.name)))
        error = field_rules.evaluate(value)
        if error is not None:
            errors.append(error)
        cleaned[field_rules.name] = value

    if errors:
        return ValidationResult(errors=errors)
    return ValidationResult(submission=ContactSubmission(**cleaned))
