def normalize(text) -> str:
    """Canonical form used for every name comparison: trimmed, lower-case."""
    if text is None:
        return ''
    return str(text).strip().lower()


def same_name(guess, target) -> bool:
    canonical = normalize(guess)
    return bool(canonical) and canonical == normalize(target)
