"""
Testes das utilidades de limpeza de texto e de conversão de valores.
"""
import pytest

from utils.input_sanitization import parse_brl_number, sanitize_multiline, sanitize_string, slugify


@pytest.mark.parametrize("raw,expected", [
    ("R$ 450.000,00", 450000.0),
    ("1.250.000", 1250000.0),
    ("450.000", 450000.0),
    ("87,5", 87.5),
    ("120.5", 120.5),
    ("180 m²", 180.0),
    (320000, 320000.0),
    ("", None),
    ("a combinar", None),
    (None, None),
])
def test_parse_brl_number(raw, expected):
    assert parse_brl_number(raw) == expected


@pytest.mark.parametrize("raw,expected", [
    ("São Paulo", "sao-paulo"),
    ("Guarujá", "guaruja"),
    ("  Praia   Grande ", "praia-grande"),
    ("Apartamento/Cobertura", "apartamentocobertura"),
    ("", ""),
])
def test_slugify(raw, expected):
    assert slugify(raw) == expected


def test_sanitize_string_removes_html_and_whitespace():
    assert sanitize_string("<b>Maria</b>   da\x00 Silva") == "Maria da Silva"
    assert sanitize_string("Tom &amp; Jerry") == "Tom Jerry"
    assert sanitize_string("abcdef", max_length=3) == "abc"
    assert sanitize_string(None) == ""


def test_sanitize_multiline_keeps_line_breaks():
    assert sanitize_multiline("Olá\n\n<i>quero</i> visitar\n") == "Olá\nquero visitar"
    assert sanitize_multiline("<br>") is None
    assert sanitize_multiline(None) is None
