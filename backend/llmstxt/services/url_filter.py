"""Include/exclude glob filtering of candidate URLs.

Patterns starting with ``/`` are matched against the URL path; any other
pattern is matched against the full URL. ``*`` matches across ``/``.
"""

import fnmatch
import logging
import re
from collections.abc import Callable, Iterable
from urllib.parse import urlparse

from llmstxt.config import STANDARD_EXCLUDE_PATHS

logger = logging.getLogger(__name__)

UrlFilter = Callable[[str], bool]


def _compile(patterns: Iterable[str]) -> list[tuple[bool, re.Pattern[str]]]:
    """Compile globs to regexes, dropping any that fail to compile."""
    compiled = []
    for pattern in patterns:
        if not pattern:
            continue
        try:
            regex = re.compile(fnmatch.translate(pattern))
        except re.error:
            logger.warning(f"Ignoring malformed URL pattern: {pattern!r}")
            continue
        compiled.append((pattern.startswith("/"), regex))
    return compiled


def _matches_any(compiled: list[tuple[bool, re.Pattern[str]]], url: str) -> bool:
    path = urlparse(url).path or "/"
    for path_only, regex in compiled:
        target = path if path_only else url
        if regex.match(target):
            return True
    return False


def create_url_filter(
    include_paths: Iterable[str] = (),
    exclude_paths: Iterable[str] = (),
    standard_excludes: Iterable[str] = STANDARD_EXCLUDE_PATHS,
) -> UrlFilter:
    """Build a predicate deciding whether a URL should be kept.

    Excludes always win. With no include patterns every non-excluded URL
    passes; otherwise a URL must match at least one include pattern.
    The standard excludes are always added to ``exclude_paths``.
    """
    include_patterns = [p for p in include_paths if p]
    includes = _compile(include_patterns)
    excludes = _compile([*standard_excludes, *exclude_paths])

    def include(url: str) -> bool:
        if _matches_any(excludes, url):
            return False
        if include_patterns and not _matches_any(includes, url):
            return False
        return True

    return include
