"""
Tag registry: the reserved title prefixes that mark typed records.

Every typed record is stored as a note whose title begins with its
domain's tag (``BOOK: Dune by Herbert``). A note whose title begins with
no registered tag is a plain user note.
"""

import re
from typing import Iterator, Optional

from .types import Domain


# Wire values. These must match existing stored notes exactly.
DEFAULT_TAGS: dict[Domain, str] = {
    Domain.BOOK: "BOOK:",
    Domain.GOAL: "GOAL:",
    Domain.TRANSACTION: "FINANCE:",
    Domain.JOURNAL: "JOURNAL:",
    Domain.MEDITATION: "MEDITATION:",
    Domain.DETOX: "DETOX:",
}


class TagRegistry:
    """
    Ordered, closed mapping of domain -> title tag.

    The exclusion pattern used for the plain-notes view is derived from
    the same mapping, so registering a domain updates both.
    """

    def __init__(self, tags: Optional[dict[Domain, str]] = None):
        tags = dict(DEFAULT_TAGS if tags is None else tags)
        for domain, tag in tags.items():
            if not tag:
                raise ValueError(f"Empty tag for domain {domain.value!r}")
        values = list(tags.values())
        for i, a in enumerate(values):
            for b in values[i + 1:]:
                if a.startswith(b) or b.startswith(a):
                    raise ValueError(f"Tags are not mutually exclusive: {a!r}, {b!r}")
        self._tags = tags
        self._pattern = re.compile(
            "^(" + "|".join(re.escape(t) for t in self.tags) + ")"
        )

    def __iter__(self) -> Iterator[tuple[Domain, str]]:
        return iter(self._tags.items())

    @property
    def tags(self) -> list[str]:
        return list(self._tags.values())

    def prefix_for(self, domain: Domain) -> str:
        """Tag for a domain."""
        return self._tags[domain]

    def matches_any(self, title: str) -> Optional[Domain]:
        """
        Domain whose tag starts ``title``, or None for a plain note.
        """
        for domain, tag in self:
            if title.startswith(tag):
                return domain
        return None

    def is_reserved(self, title: str) -> bool:
        """True if ``title`` would be claimed by a typed domain."""
        return self.matches_any(title) is not None

    def exclusion_pattern(self) -> re.Pattern:
        """Regex matching any title that starts with a registered tag."""
        return self._pattern

    def tag_pattern(self, domain: Domain) -> str:
        """Regex source matching titles of a single domain."""
        return "^" + re.escape(self._tags[domain])


DEFAULT_REGISTRY = TagRegistry()
