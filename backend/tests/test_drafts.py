"""
Product draft tests: attachment validation and preview file lifecycle.
"""

import os

import pytest

from thriftshop.drafts import ProductDraft, format_description
from thriftshop.extensions import db
from thriftshop.models import Product
from thriftshop.validation import ValidationError

FIELDS = dict(name="Jaket", description="Warm", size="L", price="150000", stock="1", category="Outerwear")


def test_format_description():
    text = "Vintage denim\n- warm\n- no stains"
    assert format_description(text) == "Vintage denim<br/>• warm<br/>• no stains"


def test_format_description_keeps_inline_dashes():
    assert format_description("size - L") == "size - L"


class TestAttachments:

    def test_attach_creates_preview(self):
        with ProductDraft(max_image_bytes=1024) as draft:
            handle = draft.attach("jaket.png", b"png", "image/png")
            assert os.path.exists(handle.path)
            assert len(draft.images) == 1
        assert not os.path.exists(handle.path)

    def test_rejected_image_leaves_draft_unchanged(self):
        with ProductDraft(max_image_bytes=4) as draft:
            with pytest.raises(ValidationError):
                draft.attach("big.png", b"too big", "image/png")
            with pytest.raises(ValidationError):
                draft.attach("doc.gif", b"gif", "image/gif")
            assert draft.images == ()
            assert draft.previews == ()

    def test_remove_releases_only_that_preview(self):
        with ProductDraft(max_image_bytes=1024) as draft:
            first = draft.attach("a.png", b"a", "image/png")
            second = draft.attach("b.jpg", b"b", "image/jpeg")

            draft.remove(0)
            assert not os.path.exists(first.path)
            assert os.path.exists(second.path)
            assert [img.filename for img in draft.images] == ["b.jpg"]

    def test_clear_releases_everything(self):
        draft = ProductDraft(max_image_bytes=1024)
        handles = [draft.attach(f"{i}.png", b"x", "image/png") for i in range(3)]
        draft.set_fields(**FIELDS)

        draft.clear()
        assert all(not os.path.exists(h.path) for h in handles)
        assert draft.fields == {}
        draft.close()

    def test_closed_draft_refuses_changes(self):
        draft = ProductDraft(max_image_bytes=1024)
        draft.close()
        with pytest.raises(RuntimeError):
            draft.attach("a.png", b"a", "image/png")

    def test_unknown_field(self):
        with ProductDraft(max_image_bytes=1024) as draft:
            with pytest.raises(KeyError):
                draft.set_fields(colour="blue")


class TestSubmit:

    def test_submit_creates_product_and_releases_previews(self, db_session, storage):
        with ProductDraft(max_image_bytes=1024) as draft:
            draft.set_fields(**FIELDS)
            handle = draft.attach("jaket.png", b"png", "image/png")

            created = draft.submit(storage=storage)

            assert not os.path.exists(handle.path)
            assert draft.images == ()

        assert created["name"] == "Jaket"
        assert len(created["images"]) == 1
        assert db.session.query(Product).count() == 1
        assert len(os.listdir(storage.root)) == 1

    def test_invalid_fields_keep_attachments(self, db_session, storage):
        with ProductDraft(max_image_bytes=1024) as draft:
            draft.set_fields(**{**FIELDS, "price": "-10"})
            handle = draft.attach("jaket.png", b"png", "image/png")

            with pytest.raises(ValidationError):
                draft.submit(storage=storage)

            assert os.path.exists(handle.path)
            assert len(draft.images) == 1
        assert db.session.query(Product).count() == 0
