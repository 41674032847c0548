"""
Document Scanner - Find price-like elements

Two independent passes over a subtree:
1. Structural hints: elements whose class / id / data-testid mentions a price
2. Text walk: short text leaves carrying a currency marker and a number,
   either in the leaf itself or (for a leaf with only one of the two) in
   the surrounding parent / grandparent text

Read-only: the scanner never touches the document or the store.
"""

import logging
from typing import Dict, List, Optional, Tuple

from .annotations import AnnotationStore, text_without_annotations
from .document import Element, Text
from .extractor import has_currency_marker, has_number

logger = logging.getLogger(__name__)

# (attribute, substring) pairs, equivalent to [attr*=substring] selectors
PRICE_HINTS: Tuple[Tuple[str, str], ...] = (
    ("data-testid", "price"),
    ("class", "price"),
    ("id", "price"),
    ("class", "offer-price__number"),
    ("class", "offer-price__currency"),
)

SKIP_TAGS = frozenset({"script", "style", "noscript", "textarea", "input", "select", "option"})

MAX_TEXT_LENGTH = 140
PARENT_TEXT_LIMIT = 180
CONTAINER_TEXT_LIMIT = 220
SIBLING_TEXT_LIMIT = 80


def matches_hint(element: Element, attribute: str, substring: str) -> bool:
    value = element.get(attribute)
    return value is not None and substring in value


class DocumentScanner:
    """
    Collect candidate elements for price detection.

    Usage:
        scanner = DocumentScanner(store)
        candidates = scanner.scan(document.body)
    """

    def __init__(self, store: AnnotationStore):
        self.store = store

    def is_eligible(self, element: Optional[Element]) -> bool:
        if not isinstance(element, Element):
            return False
        if element.tag in SKIP_TAGS:
            return False
        if element.is_content_editable:
            return False
        if self.store.inside_annotation(element):
            return False
        return True

    def scan(self, root: Element) -> List[Element]:
        """
        Candidate elements under ``root``.

        Returns:
            Deduplicated list: hint matches first (in hint order), then text
            walk matches, each in document order
        """
        found: Dict[Element, None] = {}

        for attribute, substring in PRICE_HINTS:
            for element in root.iter_elements():
                if matches_hint(element, attribute, substring) and self.is_eligible(element):
                    found.setdefault(element)

        for leaf in root.iter_text():
            parent = leaf.parent
            if self._accept_text(leaf):
                found.setdefault(parent)

        candidates = list(found)
        logger.debug(f"Scan found {len(candidates)} candidates")
        return candidates

    def _accept_text(self, leaf: Text) -> bool:
        parent = leaf.parent
        if not self.is_eligible(parent):
            return False

        text = leaf.data
        trimmed = text.strip()
        if not trimmed or len(trimmed) > MAX_TEXT_LENGTH:
            return False

        currency = has_currency_marker(text)
        number = has_number(text)
        if currency and number:
            return True
        if not currency and not number:
            return False

        # One marker in the leaf, look for the other one nearby
        complement = has_number if currency else has_currency_marker

        parent_text = text_without_annotations(parent, self.store, PARENT_TEXT_LIMIT)
        if len(parent_text) <= PARENT_TEXT_LIMIT and complement(parent_text):
            return True

        container = parent.parent
        if container is not None:
            container_text = text_without_annotations(container, self.store, CONTAINER_TEXT_LIMIT)
            if len(container_text) <= CONTAINER_TEXT_LIMIT and complement(container_text):
                return True

        return False

    def context_texts(self, element: Element) -> List[str]:
        """
        Fallback fragments for extraction, in priority order: own text,
        previous sibling, next sibling, parent, grandparent.
        """
        texts: List[str] = []

        def push(value: Optional[str], limit: int) -> None:
            if not value:
                return
            trimmed = value.strip()
            if not trimmed or len(trimmed) > limit or trimmed in texts:
                return
            texts.append(trimmed)

        push(text_without_annotations(element, self.store), MAX_TEXT_LENGTH)

        prev = self._sibling(element, forward=False)
        if prev is not None:
            push(text_without_annotations(prev, self.store, SIBLING_TEXT_LIMIT), SIBLING_TEXT_LIMIT)

        nxt = self._sibling(element, forward=True)
        if nxt is not None:
            push(text_without_annotations(nxt, self.store, SIBLING_TEXT_LIMIT), SIBLING_TEXT_LIMIT)

        parent = element.parent
        if parent is not None:
            push(text_without_annotations(parent, self.store, PARENT_TEXT_LIMIT), PARENT_TEXT_LIMIT)
            if parent.parent is not None:
                push(text_without_annotations(parent.parent, self.store, CONTAINER_TEXT_LIMIT), CONTAINER_TEXT_LIMIT)

        return texts

    def _sibling(self, element: Element, forward: bool) -> Optional[Element]:
        """Nearest element sibling that is not an annotation node."""
        node = element.next_element_sibling if forward else element.previous_element_sibling
        while node is not None and self.store.is_annotation(node):
            node = node.next_element_sibling if forward else node.previous_element_sibling
        return node
