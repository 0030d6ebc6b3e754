"""Normalization of record keys derived from user-supplied names."""

import unicodedata


def normalize_name(value: str) -> str:
    """Return the lookup form of a user or role name.

    Trims surrounding whitespace, strips diacritics and case-folds, so
    ``" André "`` and ``"ANDRE"`` map to the same key.

    >>> normalize_name(" André ")
    'andre'
    """
    decomposed = unicodedata.normalize("NFKD", value.strip())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.casefold()
