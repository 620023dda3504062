# utils/validators.py

def non_empty(text) -> bool:
    """
    True if `text` is not None/empty after stripping whitespace.
    """
    return bool(text and str(text).strip())


# ---- Numeric parsing & validators ----

def try_parse_float(x):
    """
    Best-effort parse to float.

    Returns:
        (ok: bool, value: float|None)
    """
    if isinstance(x, bool):
        return False, None
    try:
        return True, float(x)
    except (TypeError, ValueError):
        return False, None


def is_non_negative_number(x) -> bool:
    """
    True iff x parses to a float and value >= 0.
    """
    ok, val = try_parse_float(x)
    return bool(ok and val is not None and val >= 0)


def is_strictly_positive_number(x) -> bool:
    """
    True iff x parses to a float and value > 0.
    """
    ok, val = try_parse_float(x)
    return bool(ok and val is not None and val > 0)


def is_positive_int(x) -> bool:
    """
    True iff x is a whole number > 0 (stock is counted in units).
    Accepts ints and integral floats (2.0); rejects bools and strings.
    """
    if isinstance(x, bool):
        return False
    if isinstance(x, int):
        return x > 0
    if isinstance(x, float):
        return x.is_integer() and x > 0
    return False


def is_percentage(x) -> bool:
    """
    True iff x parses to a float within [0, 100].
    """
    ok, val = try_parse_float(x)
    return bool(ok and val is not None and 0 <= val <= 100)


def is_whole_number(x) -> bool:
    """
    True iff x is an int or an integral float (any sign); rejects bools.
    """
    if isinstance(x, bool):
        return False
    if isinstance(x, int):
        return True
    return isinstance(x, float) and x.is_integer()
