"""
Document Snapshot - Bridge between a live browser page and the document model

- capture_snapshot(page): serialize the page DOM to JSON via Playwright
- build_document(snapshot): JSON snapshot -> Document
- render_html(document): Document -> HTML markup (annotations included)
- el(tag, *children, **attrs): small tree builder for fixtures and embedding

Snapshot shape:
    {
        "hostname": "shop.example",
        "visible": true,
        "root": {"tag": "body", "attrs": {...}, "children": [{"text": "..."}, {...}]}
    }
"""

import html
import logging
from typing import Any, Dict, List, Optional, Tuple, Union

from .document import Document, Element, Node, Text
from .exceptions import SnapshotError

logger = logging.getLogger(__name__)

VOID_TAGS = frozenset({"area", "base", "br", "col", "embed", "hr", "img", "input", "link", "meta", "source", "wbr"})
RAW_TEXT_TAGS = frozenset({"script", "style"})

SNAPSHOT_JS = """
    (maxNodes) => {
        let count = 0;
        const serialize = (node) => {
            if (count++ > maxNodes) return null;
            if (node.nodeType === Node.TEXT_NODE) {
                return { text: node.textContent };
            }
            if (node.nodeType !== Node.ELEMENT_NODE) return null;

            const attrs = {};
            for (const attr of node.attributes) {
                attrs[attr.name] = attr.value;
            }
            const children = [];
            for (const child of node.childNodes) {
                const serialized = serialize(child);
                if (serialized) children.push(serialized);
            }
            return { tag: node.tagName.toLowerCase(), attrs, children };
        };

        return {
            hostname: location.hostname,
            visible: document.visibilityState === 'visible',
            root: serialize(document.body || document.documentElement)
        };
    }
"""


async def capture_snapshot(page, max_nodes: int = 50000) -> Dict[str, Any]:
    """
    Serialize the page's body into a JSON-compatible snapshot.

    Args:
        page: Playwright page
        max_nodes: Node budget; larger pages are truncated
    """
    snapshot = await page.evaluate(SNAPSHOT_JS, max_nodes)
    if not isinstance(snapshot, dict) or not snapshot.get("root"):
        raise SnapshotError("Page returned an empty snapshot")
    return snapshot


def _make_node(data: Any) -> Tuple[Node, List[Any]]:
    """Node for one snapshot entry plus its raw children."""
    if not isinstance(data, dict):
        raise SnapshotError(f"Invalid snapshot node: {data!r}")
    if "text" in data:
        return Text(str(data["text"])), []

    tag = data.get("tag")
    if not isinstance(tag, str) or not tag:
        raise SnapshotError(f"Snapshot node without tag: {data!r}")
    attrs = data.get("attrs") or {}
    if not isinstance(attrs, dict):
        raise SnapshotError(f"Invalid attributes for <{tag}>")
    children = data.get("children") or []
    if not isinstance(children, list):
        raise SnapshotError(f"Invalid children for <{tag}>")

    return Element(tag, {str(k): str(v) for k, v in attrs.items()}), children


def _build_node(data: Any) -> Node:
    # Iterative; snapshot nesting depth is unbounded
    root, children = _make_node(data)
    stack = [(root, children)]
    while stack:
        node, raw_children = stack.pop()
        for raw in raw_children:
            child, grandchildren = _make_node(raw)
            node.append(child)
            if grandchildren:
                stack.append((child, grandchildren))
    return root


def build_document(snapshot: Dict[str, Any], hostname: Optional[str] = None, visible: Optional[bool] = None) -> Document:
    """
    Build a Document from a snapshot.

    Args:
        snapshot: Output of capture_snapshot (or the same shape)
        hostname: Overrides the snapshot's hostname
        visible: Overrides the snapshot's visibility

    Raises:
        SnapshotError: snapshot shape is invalid
    """
    if not isinstance(snapshot, dict):
        raise SnapshotError("Snapshot must be an object")
    root = _build_node(snapshot.get("root"))
    if not isinstance(root, Element):
        raise SnapshotError("Snapshot root must be an element")

    return Document(
        root,
        hostname=hostname if hostname is not None else str(snapshot.get("hostname") or ""),
        visible=visible if visible is not None else bool(snapshot.get("visible", True)),
    )


def _open_tag(element: Element) -> str:
    attrs = "".join(f' {name}="{html.escape(value)}"' for name, value in element.attrs.items())
    return f"<{element.tag}{attrs}>"


def _render(root: Element) -> str:
    parts: List[str] = []
    # Entries are nodes to render or closing tags to emit
    stack: List[Tuple[Union[Node, str], bool]] = [(root, False)]
    while stack:
        item, raw = stack.pop()
        if isinstance(item, str):
            parts.append(item)
        elif isinstance(item, Text):
            parts.append(item.data if raw else html.escape(item.data, quote=False))
        else:
            parts.append(_open_tag(item))
            if item.tag in VOID_TAGS:
                continue
            stack.append((f"</{item.tag}>", False))
            child_raw = item.tag in RAW_TEXT_TAGS
            stack.extend((child, child_raw) for child in reversed(item.children))
    return "".join(parts)


def render_html(document: Union[Document, Element]) -> str:
    """Serialize a document (or subtree) back to HTML markup."""
    root = document.root if isinstance(document, Document) else document
    return _render(root)


def el(tag: str, *children: Union[Node, str], **attrs: str) -> Element:
    """
    Build an element; strings become text leaves.

    Keyword names map to attributes with ``class_`` -> ``class`` and
    underscores -> dashes (``data_testid`` -> ``data-testid``).
    """
    normalized = {}
    for name, value in attrs.items():
        normalized[name.rstrip("_").replace("_", "-")] = value
    nodes = [Text(child) if isinstance(child, str) else child for child in children]
    return Element(tag, normalized, nodes)
