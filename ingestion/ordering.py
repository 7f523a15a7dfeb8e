"""
Fixed total ordering over identities.

Numeric ids (ints or digit strings) sort numerically and before every
other id; the rest sort as text. Shard assignment and export order both
rely on this being stable across invocations.
"""

from typing import Any, Iterable, List, Tuple


def natural_key(identity: Any) -> Tuple[int, int, str]:
    text = str(identity).strip()
    if text.isascii() and text.isdigit():
        return (0, int(text), text)
    return (1, 0, text)


def sort_identities(identities: Iterable[Any]) -> List[Any]:
    """Sorted, de-duplicated copy (by string form, first occurrence kept)."""
    seen = set()
    unique = []
    for identity in identities:
        marker = str(identity).strip()
        if marker in seen:
            continue
        seen.add(marker)
        unique.append(identity)
    return sorted(unique, key=natural_key)
