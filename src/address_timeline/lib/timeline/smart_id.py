"""Smart ID normalization.

Smart IDs are short public identifiers carriers use to look up a user.  They
are read aloud and hand-copied, so letters easily mistaken for digits are
folded onto the digit before matching.
"""

_AMBIGUOUS = str.maketrans({"I": "1", "S": "5", "Z": "2", "O": "0"})


def normalize_smart_id(raw: str) -> str:
    """Upper-case and fold look-alike letters (I, S, Z, O) to digits.

    Args:
        raw: Smart ID as typed by the caller.

    Returns:
        Canonical smart ID, stripped of surrounding whitespace.
    """
    return raw.strip().upper().translate(_AMBIGUOUS)
