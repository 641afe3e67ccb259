"""Tests for the contact form rule table."""
import pytest

from contact_relay.services.validation import (
    CONTACT_RULES,
    is_mobile_phone,
    normalize_email,
    normalize_single_line,
    validate_submission,
)


def test_valid_submission_is_trimmed_and_normalized(valid_payload):
    result = validate_submission(valid_payload)

    assert result.is_valid
    assert result.errors == []
    submission = result.submission
    assert submission.full_name == "María Fernández"
    assert submission.email == "maria.fernandez@example.com"
    assert submission.phone == "+591 71234567"
    assert submission.subject == "Cotización de servicio"
    assert submission.message.startswith("Quisiera")


def test_empty_body_reports_every_field():
    result = validate_submission({})

    assert not result.is_valid
    assert result.submission is None
    assert result.errors == [
        "El nombre completo es requerido",
        "Correo electrónico inválido",
        "El teléfono es requerido",
        "El asunto es requerido",
        "El mensaje es requerido",
    ]


@pytest.mark.parametrize(
    "field,value,expected",
    [
        ("nombreCompleto", "   ", "El nombre completo es requerido"),
        ("nombreCompleto", "a" * 101, "El nombre completo es muy largo"),
        ("correoElectronico", "no-es-un-correo", "Correo electrónico inválido"),
        ("correoElectronico", "", "Correo electrónico inválido"),
        ("telefono", "", "El teléfono es requerido"),
        ("telefono", "llámame", "Teléfono inválido"),
        ("telefono", "12", "Teléfono inválido"),
        ("asunto", "", "El asunto es requerido"),
        ("asunto", "b" * 151, "El asunto es muy largo"),
        ("mensaje", "", "El mensaje es requerido"),
        ("mensaje", "corto", "El mensaje debe tener entre 10 y 1000 caracteres"),
        ("mensaje", "c" * 1001, "El mensaje debe tener entre 10 y 1000 caracteres"),
    ],
)
def test_single_invalid_field_yields_single_error(valid_payload, field, value, expected):
    valid_payload[field] = value

    result = validate_submission(valid_payload)

    assert result.errors == [expected]
    assert result.submission is None


def test_missing_field_counts_as_empty(valid_payload):
    del valid_payload["mensaje"]

    result = validate_submission(valid_payload)

    assert result.errors == ["El mensaje es requerido"]


def test_length_limits_are_inclusive(valid_payload):
    valid_payload["nombreCompleto"] = "n" * 100
    valid_payload["asunto"] = "s" * 150
    valid_payload["mensaje"] = "m" * 10

    assert validate_submission(valid_payload).is_valid

    valid_payload["mensaje"] = "m" * 1000
    assert validate_submission(valid_payload).is_valid


def test_length_is_measured_after_trimming(valid_payload):
    valid_payload["mensaje"] = "   123456789   "

    result = validate_submission(valid_payload)

    assert result.errors == ["El mensaje debe tener entre 10 y 1000 caracteres"]


def test_non_string_values(valid_payload):
    valid_payload["telefono"] = 59171234567
    valid_payload["asunto"] = None

    result = validate_submission(valid_payload)

    assert result.errors == ["El asunto es requerido"]


def test_nested_values_count_as_missing(valid_payload):
    valid_payload["nombreCompleto"] = {"first": "Ana"}

    result = validate_submission(valid_payload)

    assert result.errors == ["El nombre completo es requerido"]


def test_every_field_has_rules():
    assert [f.name for f in CONTACT_RULES] == [
        "nombreCompleto",
        "correoElectronico",
        "telefono",
        "asunto",
        "mensaje",
    ]


class TestNormalizeEmail:
    def test_lowercases_and_trims(self):
        assert normalize_email("  Juan.Perez@GMAIL.com ") == "juan.perez@gmail.com"

    def test_invalid_address_is_returned_trimmed(self):
        assert normalize_email(" not an email ") == "not an email"


class TestIsMobilePhone:
    @pytest.mark.parametrize(
        "value",
        ["+591 71234567", "71234567", "+54 9 11 4567-8901", "(011) 4567-8901", "+34.612.345.678"],
    )
    def test_accepts_common_formats(self, value):
        assert is_mobile_phone(value)

    @pytest.mark.parametrize(
        "value",
        ["123", "abc-defg", "+0 1234567", "1234567890123456", "+591 7123 4567 ext 2"],
    )
    def test_rejects_garbage(self, value):
        assert not is_mobile_phone(value)


def test_subject_line_breaks_fold_to_one_space(valid_payload):
    valid_payload["asunto"] = "  Cotización \r\n\r\n urgente\n"

    result = validate_submission(valid_payload)

    assert result.is_valid
    assert result.submission.subject == "Cotización urgente"


@pytest.mark.parametrize(
    "value,expected",
    [
        ("uno\ndos", "uno dos"),
        ("uno\r\ndos", "uno dos"),
        ("uno \n\n  dos\rtres", "uno dos tres"),
        ("  sin saltos  ", "sin saltos"),
        ("\n\n", ""),
    ],
)
def test_normalize_single_line(value, expected):
    assert normalize_single_line(value) == expected
