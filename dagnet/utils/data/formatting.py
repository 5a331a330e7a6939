"""Small helpers for normalizing user-supplied collections."""

from collections.abc import Sequence


def ensure_list(x):
    """
    Ensure that the input is returned as a list.

    - None: return []
    - list: return itself (unchanged)
    - str / bytes: return wrapped in a list
    - any other sequence (tuple, range, ...): return converted to list
    - any other object: return wrapped in a list

    Args:
        x (Any): Input value.

    Returns:
        list[Any]: List representation of `x`.

    """
    if x is None:
        return []
    if isinstance(x, list):
        return x
    if isinstance(x, (str, bytes)):
        return [x]
    if isinstance(x, Sequence):
        return list(x)
    return [x]
