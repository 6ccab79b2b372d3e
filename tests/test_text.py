"""Tests for Turkish-to-ASCII folding used on every printed user string."""

from __future__ import annotations

import pytest

from azza_erp.utils.text import normalize_text


def test_folds_every_turkish_letter() -> None:
    assert normalize_text("İıĞğÜüŞşÖöÇç") == "IiGgUuSsOoCc"


def test_keeps_case_of_folded_letters() -> None:
    assert normalize_text("ĞÜNEŞ") == "GUNES"
    assert normalize_text("Çağrı Makine Şti.") == "Cagri Makine Sti."


def test_none_becomes_empty() -> None:
    assert normalize_text(None) == ""


@pytest.mark.parametrize(
    "value",
    [
        "Caterpillar 320D, Mersin Port",
        "TAX ID: 1234567890",
        "",
        "30% deposit, 70% before delivery",
    ],
)
def test_ascii_is_unchanged(value: str) -> None:
    assert normalize_text(value) == value


@pytest.mark.parametrize("value", ["İstanbul Gümrük Müşavirliği", "ÇÖĞÜŞİ çöğüşı", "plain", "Ağır İş Makinaları"])
def test_idempotent(value: str) -> None:
    once = normalize_text(value)
    assert normalize_text(once) == once


def test_non_turkish_accents_pass_through() -> None:
    # Only the twelve Turkish letters are folded
    assert normalize_text("Société Générale") == "Société Générale"


def test_non_strings_are_stringified() -> None:
    assert normalize_text(2015) == "2015"
