"""Helpers for optional third-party dependencies."""


def check_torch():
    """Attempt to import torch, returning None if missing."""
    try:
        import torch
    except ImportError:
        return None
    return torch
