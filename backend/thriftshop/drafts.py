# Overview: In-progress product form state with image attachments and their preview files.

"""
Product drafts.

A ProductDraft holds the scalar fields of a product being created plus the
images attached so far. Each accepted image gets a PreviewHandle, a temporary
file a UI can display before the product is saved. Handles are released when
the image is removed, when the draft is cleared, after a successful submit,
and when the draft is closed.

    with ProductDraft(max_image_bytes=app.config["MAX_IMAGE_BYTES"]) as draft:
        draft.set_fields(name="Jaket", ...)
        draft.attach("jaket.png", data, "image/png")
        draft.submit(storage=app.extensions["storage"])
"""

from __future__ import annotations

import logging
import os
import re
import tempfile

from .validation import (
    CreateProductRequest,
    ImageUpload,
    PRODUCT_FIELDS,
    parse_product_fields,
    validate_image,
)
from .services import products_service

logger = logging.getLogger(__name__)

_BULLET = re.compile(r"^- ", re.MULTILINE)


def format_description(text: str) -> str:
    """Render a plain-text description: "- " bullets become "• ", newlines become <br/>."""
    return _BULLET.sub("• ", text or "").replace("\r\n", "\n").replace("\n", "<br/>")


class PreviewHandle:
    """Temporary file holding one attached image until released."""

    def __init__(self, data: bytes, filename: str):
        suffix = os.path.splitext(filename)[1]
        fd, self.path = tempfile.mkstemp(prefix="thriftshop-preview-", suffix=suffix)
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        self.released = False

    def release(self) -> None:
        if self.released:
            return
        self.released = True
        try:
            os.remove(self.path)
        except FileNotFoundError:
            logger.debug("Preview file %s already gone", self.path)


class ProductDraft:
    def __init__(self, max_image_bytes: int):
        self.max_image_bytes = max_image_bytes
        self.fields: dict[str, str] = {}
        self._images: list[ImageUpload] = []
        self._previews: list[PreviewHandle] = []
        self.closed = False

    def __enter__(self) -> "ProductDraft":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def images(self) -> tuple[ImageUpload, ...]:
        return tuple(self._images)

    @property
    def previews(self) -> tuple[PreviewHandle, ...]:
        return tuple(self._previews)

    def _check_open(self) -> None:
        if self.closed:
            raise RuntimeError("Draft is closed")

    def set_fields(self, **values) -> None:
        self._check_open()
        unknown = set(values) - set(PRODUCT_FIELDS)
        if unknown:
            raise KeyError(f"Unknown product fields: {', '.join(sorted(unknown))}")
        self.fields.update({k: v for k, v in values.items() if v is not None})

    def attach(self, filename: str, data: bytes, content_type: str) -> PreviewHandle:
        """
        Accept an image after the same size/MIME checks the API applies.

        Raises:
            ValidationError: image rejected; the draft is unchanged
        """
        self._check_open()
        validate_image(filename, content_type, len(data), self.max_image_bytes)
        handle = PreviewHandle(data, filename)
        self._images.append(ImageUpload(filename=filename, content_type=content_type.lower(), data=data))
        self._previews.append(handle)
        return handle

    def remove(self, index: int) -> None:
        self._check_open()
        self._images.pop(index)
        self._previews.pop(index).release()

    def clear(self) -> None:
        """Drop every attachment and field."""
        for handle in self._previews:
            handle.release()
        self._previews.clear()
        self._images.clear()
        self.fields.clear()

    def build_request(self) -> CreateProductRequest:
        return CreateProductRequest(fields=parse_product_fields(self.fields), images=self.images)

    def submit(self, *, storage) -> dict:
        """
        Create the product. Needs an application context.

        The draft is cleared only after the product is saved; on any error the
        attachments stay in place so the caller can retry.
        """
        self._check_open()
        created = products_service.create_product(self.build_request(), storage=storage)
        self.clear()
        return created

    def close(self) -> None:
        if self.closed:
            return
        self.clear()
        self.closed = True
