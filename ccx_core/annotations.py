"""
Annotation Store

Per-document side tables keyed by element identity (weak references):
processing state for every candidate element and the annotation node
inserted after each anchor. Nothing is written onto the host nodes except
the annotation nodes themselves.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional
from weakref import WeakKeyDictionary

from .document import Element, Text

logger = logging.getLogger(__name__)

ANNOTATION_TAG = "span"
ANNOTATION_CLASS = "ccx-inline"


class ProcessingStatus(Enum):
    """Lifecycle of a candidate element"""
    UNPROCESSED = "unprocessed"
    PROCESSING = "processing"
    PROCESSED = "processed"


@dataclass(frozen=True)
class ElementState:
    status: ProcessingStatus = ProcessingStatus.UNPROCESSED
    source_text: Optional[str] = None
    group_key: Optional[str] = None


UNPROCESSED = ElementState()


@dataclass
class Annotation:
    anchor: Element
    group_key: str
    display_text: str
    node: Element


class AnnotationStore:
    """Processing state and annotation nodes for one document."""

    def __init__(self):
        self._states: "WeakKeyDictionary[Element, ElementState]" = WeakKeyDictionary()
        self._by_anchor: "WeakKeyDictionary[Element, Annotation]" = WeakKeyDictionary()
        self._by_node: "WeakKeyDictionary[Element, Annotation]" = WeakKeyDictionary()

    # Processing state

    def state(self, element: Element) -> ElementState:
        return self._states.get(element, UNPROCESSED)

    def is_processing(self, element: Element) -> bool:
        return self.state(element).status is ProcessingStatus.PROCESSING

    def begin_processing(self, element: Element) -> bool:
        """Mark ``element`` as in flight; False if it already is."""
        if self.is_processing(element):
            return False
        self._states[element] = ElementState(ProcessingStatus.PROCESSING)
        return True

    def end_processing(self, element: Element) -> None:
        """Release the in-flight marker unless the element was committed."""
        if self.is_processing(element):
            self._states.pop(element, None)

    def mark_processed(self, element: Element, source_text: str, group_key: str) -> None:
        self._states[element] = ElementState(ProcessingStatus.PROCESSED, source_text, group_key)

    # Annotation nodes

    def is_annotation(self, element: Element) -> bool:
        return element in self._by_node

    def inside_annotation(self, element: Element) -> bool:
        return element.closest(self.is_annotation) is not None

    def annotation_for(self, element: Element) -> Optional[Annotation]:
        return self._by_anchor.get(element)

    def annotations(self) -> List[Annotation]:
        return list(self._by_anchor.values())

    def has_group(self, parent: Optional[Element], group_key: str) -> bool:
        """True when an annotation under ``parent`` already carries ``group_key``."""
        if parent is None:
            return False
        for element in parent.iter_elements():
            annotation = self._by_node.get(element)
            if annotation is not None and annotation.group_key == group_key:
                return True
        return False

    def attach(self, anchor: Element, display_text: str, group_key: str) -> Annotation:
        """Insert an annotation node right after ``anchor``."""
        node = Element(
            ANNOTATION_TAG,
            {"class": ANNOTATION_CLASS, "data-ccx-group": group_key},
            [Text(display_text)],
        )
        annotation = Annotation(anchor, group_key, display_text, node)
        # Register before inserting so listeners already see it as an annotation
        self._by_anchor[anchor] = annotation
        self._by_node[node] = annotation
        try:
            anchor.insert_after(node)
        except ValueError:
            self._by_anchor.pop(anchor, None)
            self._by_node.pop(node, None)
            raise
        return annotation

    def retract(self, anchor: Element) -> None:
        """Remove the annotation after ``anchor`` and forget its processed state."""
        annotation = self._by_anchor.pop(anchor, None)
        if annotation is not None:
            self._by_node.pop(annotation.node, None)
            annotation.node.remove()
        if self.state(anchor).status is ProcessingStatus.PROCESSED:
            self._states.pop(anchor, None)

    def clear(self) -> int:
        """Remove every annotation node and every state entry."""
        annotations = self.annotations()
        for annotation in annotations:
            annotation.node.remove()
        self._by_anchor.clear()
        self._by_node.clear()
        self._states.clear()
        if annotations:
            logger.debug(f"Cleared {len(annotations)} annotations")
        return len(annotations)

    def iter_states(self) -> Iterator[ElementState]:
        return iter(list(self._states.values()))


def text_without_annotations(element: Element, store: AnnotationStore, limit: Optional[int] = None) -> str:
    """
    Text content of ``element`` skipping annotation subtrees.

    With ``limit``, collection stops once the text exceeds it, so callers can
    tell "too long" apart by checking ``len(text) > limit``.
    """
    parts = []
    length = 0
    for leaf in element.iter_text():
        parent = leaf.parent
        if parent is not None and store.inside_annotation(parent):
            continue
        parts.append(leaf.data)
        length += len(leaf.data)
        if limit is not None and length > limit:
            break
    return "".join(parts)
