"""Pick the newest tag from resolved creation times."""

from __future__ import annotations

from typing import TYPE_CHECKING

from newest_image_tag.errors import EmptyTagListError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from newest_image_tag.schemas import ResolvedTag


def select_newest(results: Iterable[ResolvedTag], image: str = "") -> str:
    """Return the tag with the latest creation time.

    Ties on the creation time go to the lexicographically smallest tag, so
    the answer does not depend on the order the workers finished in.

    Args:
        results: Successful resolutions.
        image: Image name used in the error message when results are empty.

    Returns:
        The selected tag name.

    Raises:
        EmptyTagListError: If results is empty.
        ValueError: If any result carries an error.

    Example:
        >>> from datetime import datetime, timezone
        >>> from newest_image_tag.schemas import ResolvedTag
        >>> t = datetime(2022, 1, 1, tzinfo=timezone.utc)
        >>> select_newest([ResolvedTag("v2", t), ResolvedTag("v1", t)])
        'v1'
    """
    resolved = list(results)
    if not resolved:
        raise EmptyTagListError(image)

    for result in resolved:
        if not result.ok:
            msg = f"Cannot select from unresolved tag '{result.tag}'"
            raise ValueError(msg)

    newest = max(r.created_at for r in resolved if r.created_at is not None)
    return min(r.tag for r in resolved if r.created_at == newest)


__all__ = ["select_newest"]
