"""Public package surface for lazyreview.

Exports ``main`` for programmatic CLI invocation.
The review core lives in ``lazyreview.runtime``; diff datatypes and the git
backend live in ``lazyreview.diff_model``.
"""

from __future__ import annotations


def main(*args, **kwargs):
    """Lazily import CLI entrypoint to keep package imports lightweight."""
    from .cli import main as _main

    return _main(*args, **kwargs)


__all__ = ["main"]
