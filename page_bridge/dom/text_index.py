"""Search, highlight and replace over a document's text leaves.

All three operations work at whole-leaf granularity: a text node that
contains the term is wrapped or rewritten as a unit. Several matches inside
one leaf produce one wrapper, not one per occurrence. Element structure is
never touched apart from the highlight wrappers themselves.
"""

from __future__ import annotations

__all__ = [
    'DEFAULT_MARKER_CLASS',
    'HighlightOptions',
    'ReplaceOptions',
    'highlight',
    'remove_highlight',
    'find_and_replace',
    'build_matcher',
]

import logging
import re

from bs4.element import NavigableString, Tag

from page_bridge.dom.document import NON_RENDERED_TAGS, MutationRecord, PageDocument, format_style
from page_bridge.errors import PatternError
from page_bridge.models import WireModel

logger = logging.getLogger(__name__)

DEFAULT_MARKER_CLASS = 'plugin-highlight'


class HighlightOptions(WireModel):
    background_color: str = '#ffff00'
    color: str = '#000000'
    case_sensitive: bool = False
    class_name: str = DEFAULT_MARKER_CLASS


class ReplaceOptions(WireModel):
    case_sensitive: bool = False
    whole_word: bool = False
    use_regex: bool = False


def highlight(document: PageDocument, term: str, options: HighlightOptions | None = None) -> int:
    """Wrap every text leaf containing ``term`` in a styled marker span.

    Returns:
        Number of leaves wrapped. An empty term wraps nothing.
    """
    options = options or HighlightOptions()
    if not term:
        return 0

    needle = term if options.case_sensitive else term.casefold()
    matches = [
        leaf
        for leaf in document.text_leaves()
        if needle in (str(leaf) if options.case_sensitive else str(leaf).casefold())
    ]

    style = format_style(
        {
            'background-color': options.background_color,
            'color': options.color,
            'padding': '2px 4px',
            'border-radius': '3px',
        }
    )
    for leaf in matches:
        wrapper = document.soup.new_tag('span', attrs={'class': options.class_name, 'style': style})
        wrapper.string = str(leaf)
        leaf.replace_with(wrapper)
        document.notify_mutation(MutationRecord(type='childList', target=wrapper))

    logger.debug(f'Highlighted {len(matches)} leaves for {term!r}')
    return len(matches)


def remove_highlight(document: PageDocument, class_name: str = DEFAULT_MARKER_CLASS) -> int:
    """Unwrap every marker element back into plain text, merging adjacent fragments.

    Returns:
        Number of marker elements removed.
    """
    markers = document.soup.find_all(class_=class_name)
    for marker in markers:
        parent = marker.parent
        marker.replace_with(NavigableString(marker.get_text()))
        if isinstance(parent, Tag):
            parent.smooth()
            document.notify_mutation(MutationRecord(type='childList', target=parent))
    return len(markers)


def build_matcher(find: str, options: ReplaceOptions) -> re.Pattern[str]:
    """Compile the matcher for a find/replace request.

    Raises:
        PatternError: ``use_regex`` is set and ``find`` does not compile.
    """
    flags = 0 if options.case_sensitive else re.IGNORECASE
    if options.use_regex:
        try:
            return re.compile(find, flags)
        except re.error as e:
            raise PatternError(find, str(e)) from e
    escaped = re.escape(find)
    if options.whole_word:
        return re.compile(rf'\b{escaped}\b', flags)
    return re.compile(escaped, flags)


def find_and_replace(
    document: PageDocument,
    find: str,
    replace: str,
    options: ReplaceOptions | None = None,
) -> int:
    """Replace ``find`` with ``replace`` in every rendered text leaf.

    In regex mode ``replace`` is a ``re`` template (``\\1``, ``\\g<name>``);
    otherwise it is inserted literally. An invalid pattern or template is
    logged and leaves the document untouched.

    Returns:
        Number of leaves whose text changed.
    """
    options = options or ReplaceOptions()
    if not find:
        return 0

    try:
        matcher = build_matcher(find, options)
        changes: list[tuple[NavigableString, str]] = []
        for leaf in document.text_leaves():
            if leaf.parent is None or leaf.parent.name in NON_RENDERED_TAGS:
                continue
            original = str(leaf)
            if options.use_regex:
                try:
                    updated = matcher.sub(replace, original)
                except re.error as e:
                    raise PatternError(replace, str(e)) from e
            else:
                updated = matcher.sub(lambda _match: replace, original)
            if updated != original:
                changes.append((leaf, updated))
    except PatternError as e:
        logger.warning(f'find_and_replace skipped: {e}')
        return 0

    for leaf, updated in changes:
        replacement = NavigableString(updated)
        leaf.replace_with(replacement)
        document.notify_mutation(MutationRecord(type='characterData', target=replacement))

    return len(changes)
