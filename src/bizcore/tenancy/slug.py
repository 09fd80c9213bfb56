"""URL slug helpers for workspaces and companies.

Company slugs use only the first word of the company name, transliterated to
ASCII, lowercased and stripped of anything that is not a letter or digit:

    >>> derive_company_slug("Luna Denta Teknoloji")
    'luna'
    >>> derive_company_slug("Aydoğanlar Sağlık")
    'aydoganlar'
"""

import re

_TURKISH_TO_ASCII = str.maketrans(
    {
        "ç": "c",
        "Ç": "c",
        "ğ": "g",
        "Ğ": "g",
        "ı": "i",
        "İ": "i",
        "ö": "o",
        "Ö": "o",
        "ş": "s",
        "Ş": "s",
        "ü": "u",
        "Ü": "u",
    }
)

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def transliterate_turkish(value: str) -> str:
    """Replace Turkish letters with their closest ASCII equivalents."""
    return value.translate(_TURKISH_TO_ASCII)


def derive_company_slug(name: str | None) -> str:
    """Derive the slug for a company from the first word of its name.

    Returns an empty string for empty or whitespace-only names. Two companies
    whose names share a first word derive the same slug.
    """
    if not name:
        return ""
    tokens = name.split()
    if not tokens:
        return ""
    # Transliterate before lowercasing: "İ".lower() is "i" plus a combining dot
    ascii_token = transliterate_turkish(tokens[0]).lower()
    return _NON_ALNUM.sub("", ascii_token)


def slugify(value: str) -> str:
    """Slugify a full name for workspace URLs ("Acme Group" -> "acme-group")."""
    ascii_value = transliterate_turkish(value).lower()
    return _NON_ALNUM.sub("-", ascii_value).strip("-")
