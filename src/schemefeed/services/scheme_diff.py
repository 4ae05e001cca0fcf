"""Diff engine: classifies which fetched schemes are new to the cache.

Identity is the exact ``title`` string. No trimming or case folding is
applied, so "Green India Mission" and "green india mission" are distinct.
"""

from collections.abc import Sequence

from schemefeed.schemas.scheme import Scheme


def diff_schemes(previous: Sequence[Scheme], current: Sequence[Scheme]) -> list[Scheme]:
    """Return the schemes in ``current`` considered new relative to ``previous``.

    On a cold start (empty ``previous``) only schemes the pipeline already
    flagged as new are reported, not the whole set. Brand-new schemes are
    always reported, even when their title collides with an older one.
    """
    if not previous:
        candidates = [s for s in current if s.is_new or s.is_brand_new]
    else:
        previous_titles = {s.title for s in previous}
        candidates = [
            s for s in current if s.title not in previous_titles or s.is_brand_new
        ]
    return [s.model_copy(update={"detected_as_new": True}) for s in candidates]
