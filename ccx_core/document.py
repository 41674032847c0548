"""
Document Model

Minimal mutable tree standing in for the host document: element containers
and text leaves, plus a structural-change subscription (the equivalent of a
subtree MutationObserver). The engine never owns the tree; it reads it,
inserts annotation nodes and removes them again.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Optional

logger = logging.getLogger(__name__)

MutationListener = Callable[["MutationRecord"], None]

EDITABLE_VALUES = ("", "true", "plaintext-only")


@dataclass(frozen=True)
class MutationRecord:
    """One structural change: childList, characterData or attributes."""
    kind: str
    target: "Node"


class Node:
    """Common base for elements and text leaves."""

    def __init__(self):
        self.parent: Optional["Element"] = None

    @property
    def owner_document(self) -> Optional["Document"]:
        node = self
        while node.parent is not None:
            node = node.parent
        return getattr(node, "_document", None)

    @property
    def text_content(self) -> str:
        raise NotImplementedError

    @property
    def is_connected(self) -> bool:
        return self.owner_document is not None

    def remove(self) -> None:
        if self.parent is not None:
            self.parent.remove_child(self)

    def _notify(self, kind: str) -> None:
        document = self.owner_document
        if document is not None:
            document._notify(MutationRecord(kind, self))


class Text(Node):
    """Text leaf."""

    def __init__(self, data: str = ""):
        super().__init__()
        self._data = data

    @property
    def data(self) -> str:
        return self._data

    @data.setter
    def data(self, value: str) -> None:
        if value == self._data:
            return
        self._data = value
        self._notify("characterData")

    @property
    def text_content(self) -> str:
        return self._data

    def __repr__(self) -> str:
        return f"Text({self._data!r})"


class Element(Node):
    """Structural container with a tag, attributes and ordered children."""

    def __init__(self, tag: str, attrs: Optional[Dict[str, str]] = None, children: Optional[List[Node]] = None):
        super().__init__()
        self.tag = tag.lower()
        self.attrs: Dict[str, str] = dict(attrs or {})
        self.children: List[Node] = []
        for child in children or []:
            self.append(child)

    def __repr__(self) -> str:
        attrs = "".join(f" {k}={v!r}" for k, v in self.attrs.items())
        return f"<{self.tag}{attrs}>"

    # Attributes

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.attrs.get(name, default)

    def set(self, name: str, value: str) -> None:
        self.attrs[name] = value
        self._notify("attributes")

    @property
    def classes(self) -> List[str]:
        return [c for c in self.attrs.get("class", "").split() if c]

    @property
    def is_content_editable(self) -> bool:
        """Inherited ``contenteditable`` state, nearest explicit value wins."""
        node: Optional[Element] = self
        while node is not None:
            value = node.attrs.get("contenteditable")
            if value is not None:
                value = value.strip().lower()
                if value in EDITABLE_VALUES:
                    return True
                if value == "false":
                    return False
            node = node.parent
        return False

    # Tree mutation

    def append(self, child: Node) -> Node:
        return self.insert_child(len(self.children), child)

    def insert_child(self, index: int, child: Node) -> Node:
        if child.parent is not None:
            child.parent._detach(child)
        self.children.insert(index, child)
        child.parent = self
        self._notify("childList")
        return child

    def remove_child(self, child: Node) -> None:
        self._detach(child)
        self._notify("childList")

    def _detach(self, child: Node) -> None:
        self.children.remove(child)
        child.parent = None

    def insert_after(self, node: Node) -> Node:
        """Insert ``node`` as the following sibling (``afterend``)."""
        if self.parent is None:
            raise ValueError("Cannot insert after a detached element")
        parent = self.parent
        if node.parent is not None:
            node.parent._detach(node)
        index = parent.children.index(self)
        return parent.insert_child(index + 1, node)

    # Navigation

    @property
    def element_children(self) -> List["Element"]:
        return [c for c in self.children if isinstance(c, Element)]

    @property
    def previous_element_sibling(self) -> Optional["Element"]:
        if self.parent is None:
            return None
        siblings = self.parent.element_children
        index = siblings.index(self)
        return siblings[index - 1] if index > 0 else None

    @property
    def next_element_sibling(self) -> Optional["Element"]:
        if self.parent is None:
            return None
        siblings = self.parent.element_children
        index = siblings.index(self)
        return siblings[index + 1] if index + 1 < len(siblings) else None

    def iter_elements(self, include_self: bool = False) -> Iterator["Element"]:
        """Descendant elements in document (pre-)order."""
        stack: List[Element] = [self] if include_self else _reversed_elements(self)
        while stack:
            element = stack.pop()
            yield element
            stack.extend(_reversed_elements(element))

    def iter_text(self) -> Iterator[Text]:
        """Descendant text leaves in document order."""
        stack: List[Node] = list(reversed(self.children))
        while stack:
            node = stack.pop()
            if isinstance(node, Text):
                yield node
            elif isinstance(node, Element):
                stack.extend(reversed(node.children))

    def closest(self, predicate: Callable[["Element"], bool]) -> Optional["Element"]:
        node: Optional[Element] = self
        while node is not None:
            if predicate(node):
                return node
            node = node.parent
        return None

    def contains(self, node: Node) -> bool:
        current: Optional[Node] = node
        while current is not None:
            if current is self:
                return True
            current = current.parent
        return False

    @property
    def text_content(self) -> str:
        return "".join(t.data for t in self.iter_text())


def _reversed_elements(element: Element) -> List[Element]:
    return [c for c in reversed(element.children) if isinstance(c, Element)]


class Document:
    """
    Host document wrapper.

    Holds the root element, the host name used for per-site toggles, a
    visibility flag, and the structural-change listeners.
    """

    def __init__(self, root: Element, hostname: str = "", visible: bool = True):
        self.root = root
        self.hostname = hostname
        self.visible = visible
        self._listeners: List[MutationListener] = []
        root._document = self

    @property
    def body(self) -> Element:
        if self.root.tag == "body":
            return self.root
        for element in self.root.iter_elements():
            if element.tag == "body":
                return element
        return self.root

    def observe(self, listener: MutationListener) -> Callable[[], None]:
        """Subscribe to structural changes; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @property
    def observer_count(self) -> int:
        return len(self._listeners)

    def _notify(self, record: MutationRecord) -> None:
        for listener in list(self._listeners):
            try:
                listener(record)
            except Exception:
                logger.exception("Mutation listener failed")
