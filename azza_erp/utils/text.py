# azza_erp/utils/text.py
from __future__ import annotations

# The built-in PDF fonts only cover Latin-1, which lacks these letters.
_TURKISH_FOLD = str.maketrans({
    "İ": "I",
    "ı": "i",
    "Ğ": "G",
    "ğ": "g",
    "Ü": "U",
    "ü": "u",
    "Ş": "S",
    "ş": "s",
    "Ö": "O",
    "ö": "o",
    "Ç": "C",
    "ç": "c",
})


def normalize_text(value) -> str:
    """Fold Turkish letters to ASCII. Applied to user-supplied text only."""
    if value is None:
        return ""
    return str(value).translate(_TURKISH_FOLD)
