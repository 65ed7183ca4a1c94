"""Rewrite relative Markdown links into site routes."""

import posixpath
import re

DEFAULT_ROUTE_PREFIX = "/docs/"

# Inline links only: [text](url). Image links (![alt](src)) are skipped.
INLINE_LINK = re.compile(r"(?<!!)\[([^\]]+)\]\(([^)]+)\)")


def is_relative_link(url: str) -> bool:
    return url.startswith("./") or url.startswith("../")


def _clean_path(path: str, normalize: bool) -> str:
    if normalize:
        cleaned = posixpath.normpath(path)
        while cleaned.startswith("../"):
            cleaned = cleaned[3:]
        return "" if cleaned in (".", "..") else cleaned

    if path.startswith("./"):
        return path[2:]
    if path.startswith("../"):
        return path[3:]
    return path


def rewrite_url(
    url: str, route_prefix: str = DEFAULT_ROUTE_PREFIX, normalize: bool = False
) -> str:
    """Map a relative document URL onto ``route_prefix``.

    Only a single leading ``./`` or ``../`` is stripped unless ``normalize`` is
    set, in which case the whole path is resolved and any traversal above the
    synced directory is dropped. Anything that is not relative is returned
    as is.
    """
    if not is_relative_link(url):
        return url

    path, sep, fragment = url.partition("#")
    rebuilt = f"{route_prefix.rstrip('/')}/{_clean_path(path, normalize)}"
    if sep and fragment:
        rebuilt += f"#{fragment}"
    return rebuilt


def rewrite_links(
    markdown: str, route_prefix: str = DEFAULT_ROUTE_PREFIX, normalize: bool = False
) -> str:
    """Rewrite every relative inline link in ``markdown``.

    Link text is preserved exactly; absolute URLs, anchors, image links and
    reference-style definitions pass through untouched.
    """

    def _replace(match: re.Match) -> str:
        text, url = match.group(1), match.group(2)
        if not is_relative_link(url):
            return match.group(0)
        return f"[{text}]({rewrite_url(url, route_prefix, normalize)})"

    return INLINE_LINK.sub(_replace, markdown)
