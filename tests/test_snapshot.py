"""
Tests for document snapshots
"""

from unittest.mock import AsyncMock

import pytest

from ccx_core.annotations import AnnotationStore
from ccx_core.exceptions import SnapshotError
from ccx_core.scanner import DocumentScanner
from ccx_core.snapshot import SNAPSHOT_JS, build_document, capture_snapshot, el, render_html

SNAPSHOT = {
    "hostname": "shop.example",
    "visible": False,
    "root": {
        "tag": "BODY",
        "attrs": {"class": "home"},
        "children": [
            {"text": "Total: "},
            {"tag": "b", "attrs": {"class": "price"}, "children": [{"text": "€5"}]},
        ],
    },
}


class TestBuildDocument:

    def test_builds_tree(self):
        document = build_document(SNAPSHOT)
        assert document.hostname == "shop.example"
        assert document.visible is False
        assert document.body.tag == "body"
        assert document.body.text_content == "Total: €5"
        assert document.body.element_children[0].classes == ["price"]

    def test_overrides(self):
        document = build_document(SNAPSHOT, hostname="other.example", visible=True)
        assert (document.hostname, document.visible) == ("other.example", True)

    @pytest.mark.parametrize("snapshot", [
        None,
        {},
        {"root": {"text": "x"}},
        {"root": {"tag": ""}},
        {"root": {"tag": "body", "children": "x"}},
        {"root": {"tag": "body", "attrs": ["class"]}},
        {"root": {"tag": "body", "children": [42]}},
    ])
    def test_invalid_shapes(self, snapshot):
        with pytest.raises(SnapshotError):
            build_document(snapshot)


class TestRender:

    def test_escapes_text_and_attributes(self):
        node = el("p", "a<b & c", el("br"), el("a", "x", href='/?q="1"'), class_="x")
        assert render_html(node) == '<p class="x">a&lt;b &amp; c<br><a href="/?q=&quot;1&quot;">x</a></p>'

    def test_raw_text_tags(self):
        assert render_html(el("script", "if (a < b) {}")) == "<script>if (a < b) {}</script>"

    def test_document_round_trip(self):
        document = build_document(SNAPSHOT)
        assert render_html(document) == '<body class="home">Total: <b class="price">€5</b></body>'


class TestBuilder:

    def test_attribute_names(self):
        node = el("span", class_="price", data_testid="p-1")
        assert node.attrs == {"class": "price", "data-testid": "p-1"}


class TestCapture:

    @pytest.mark.asyncio
    async def test_capture(self):
        page = AsyncMock()
        page.evaluate.return_value = SNAPSHOT
        assert await capture_snapshot(page, max_nodes=10) == SNAPSHOT
        page.evaluate.assert_awaited_once_with(SNAPSHOT_JS, 10)

    @pytest.mark.asyncio
    async def test_empty_page(self):
        page = AsyncMock()
        page.evaluate.return_value = {"hostname": "x", "root": None}
        with pytest.raises(SnapshotError):
            await capture_snapshot(page)


def _nested_snapshot(depth):
    node = {"tag": "span", "attrs": {"class": "price"}, "children": [{"text": "€100"}]}
    for _ in range(depth):
        node = {"tag": "div", "attrs": {}, "children": [node]}
    return {"hostname": "shop.example", "root": {"tag": "body", "attrs": {}, "children": [node]}}


class TestDeepNesting:
    """Nesting deeper than the interpreter recursion limit"""

    DEPTH = 2500

    def test_build_and_walk(self):
        document = build_document(_nested_snapshot(self.DEPTH))
        assert document.body.text_content == "€100"
        elements = list(document.body.iter_elements())
        assert len(elements) == self.DEPTH + 1
        assert elements[-1].classes == ["price"]

        candidates = DocumentScanner(AnnotationStore()).scan(document.body)
        assert candidates == [elements[-1]]

    def test_render(self):
        markup = render_html(build_document(_nested_snapshot(self.DEPTH)))
        assert markup.count("<div>") == self.DEPTH
        assert markup.endswith('<span class="price">€100</span>' + "</div>" * self.DEPTH + "</body>")
