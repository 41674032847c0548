"""
Tests for the annotation side tables
"""

import pytest

from ccx_core.annotations import (
    ANNOTATION_CLASS,
    AnnotationStore,
    ProcessingStatus,
    text_without_annotations,
)
from ccx_core.document import Document, Element
from ccx_core.snapshot import el


@pytest.fixture
def price():
    price = el("span", "€100", class_="price")
    Document(el("body", el("p", price)))
    return price


class TestProcessingState:

    def test_default_unprocessed(self, price):
        store = AnnotationStore()
        assert store.state(price).status is ProcessingStatus.UNPROCESSED

    def test_single_in_flight(self, price):
        store = AnnotationStore()
        assert store.begin_processing(price)
        assert not store.begin_processing(price)
        store.end_processing(price)
        assert store.state(price).status is ProcessingStatus.UNPROCESSED

    def test_end_keeps_processed(self, price):
        store = AnnotationStore()
        store.begin_processing(price)
        store.mark_processed(price, "€100", "EUR:100")
        store.end_processing(price)
        state = store.state(price)
        assert state.status is ProcessingStatus.PROCESSED
        assert (state.source_text, state.group_key) == ("€100", "EUR:100")

    def test_no_attributes_written(self, price):
        store = AnnotationStore()
        store.begin_processing(price)
        store.mark_processed(price, "€100", "EUR:100")
        assert price.attrs == {"class": "price"}


class TestAnnotations:

    def test_attach_after_anchor(self, price):
        store = AnnotationStore()
        annotation = store.attach(price, "$108", "EUR:100")
        assert price.next_element_sibling is annotation.node
        assert ANNOTATION_CLASS in annotation.node.classes
        assert annotation.node.text_content == "$108"
        assert store.is_annotation(annotation.node)
        assert store.annotation_for(price) is annotation

    def test_attach_detached_rolls_back(self):
        store = AnnotationStore()
        with pytest.raises(ValueError):
            store.attach(Element("span"), "$1", "EUR:1")
        assert store.annotations() == []

    def test_has_group_scoped_to_parent(self, price):
        store = AnnotationStore()
        store.attach(price, "$108", "EUR:100")
        assert store.has_group(price.parent, "EUR:100")
        assert not store.has_group(price.parent, "EUR:200")
        assert not store.has_group(price, "EUR:100")
        assert not store.has_group(None, "EUR:100")

    def test_retract(self, price):
        store = AnnotationStore()
        store.attach(price, "$108", "EUR:100")
        store.mark_processed(price, "€100", "EUR:100")
        store.retract(price)
        assert price.next_element_sibling is None
        assert store.annotation_for(price) is None
        assert store.state(price).status is ProcessingStatus.UNPROCESSED

    def test_clear(self, price):
        store = AnnotationStore()
        store.attach(price, "$108", "EUR:100")
        store.mark_processed(price, "€100", "EUR:100")
        assert store.clear() == 1
        assert price.parent.element_children == [price]
        assert list(store.iter_states()) == []

    def test_text_without_annotations(self, price):
        store = AnnotationStore()
        store.attach(price, "$108", "EUR:100")
        assert price.parent.text_content == "€100$108"
        assert text_without_annotations(price.parent, store) == "€100"

    def test_text_limit_stops_early(self):
        body = el("body", el("p", "a" * 10), el("p", "b" * 10), el("p", "c" * 10))
        text = text_without_annotations(body, AnnotationStore(), limit=15)
        assert len(text) > 15
        assert "c" not in text
