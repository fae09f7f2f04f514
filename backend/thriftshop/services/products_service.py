# backend/thriftshop/services/products_service.py
"""
Products Service

Product create/update/delete with file-backed image attachments.

ORDERING GUARANTEES:
- Every image file is written BEFORE the row that references it is committed,
  so a committed ProductImage never points at a file that was never written.
- A write failure part-way through a batch removes the files already written
  for that request and aborts before any row is created.
- On delete, backing files are removed first on a best-effort basis; failures
  are logged and never block the row deletion (record deletion is authoritative).
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Product, ProductImage
from ..validation import (
    CreateProductRequest,
    UpdateProductRequest,
    DeleteProductRequest,
    ImageUpload,
    NotFoundError,
    StorageError,
)
from .storage_service import StoredObject

PRODUCT_MUTABLE_FIELDS = {"name", "description", "size", "price", "stock", "category"}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _get_product_or_404(product_id: int) -> Product:
    p = db.session.get(Product, product_id)
    if p is None:
        raise NotFoundError("Product not found")
    return p


def _discard_objects(storage, stored: list[StoredObject], context: str) -> None:
    for obj in stored:
        try:
            storage.delete(obj.key)
        except StorageError:
            current_app.logger.warning("Could not remove orphaned upload %s (%s)", obj.key, context)


def store_images(storage, images: tuple[ImageUpload, ...]) -> list[StoredObject]:
    """
    Write every image to storage, all-or-nothing from the caller's view.

    Raises StorageError after removing whatever this batch already wrote.
    """
    stored: list[StoredObject] = []
    for image in images:
        try:
            stored.append(storage.save(image.data, image.filename, image.content_type))
        except StorageError:
            current_app.logger.exception("Failed to store image %s", image.filename)
            _discard_objects(storage, stored, "aborted upload batch")
            raise
    return stored


def _commit_or_discard(storage, stored: list[StoredObject], context: str) -> None:
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        _discard_objects(storage, stored, context)
        raise


def list_products(category: str | None = None) -> dict:
    query = db.session.query(Product)
    if category:
        query = query.filter(Product.category == category)
    products = query.order_by(Product.created_at.desc(), Product.id.desc()).all()
    return {"products": [p.to_dict() for p in products]}


def get_product(product_id: int) -> dict:
    return _get_product_or_404(product_id).to_dict()


def create_product(req: CreateProductRequest, *, storage) -> dict:
    """
    Create a product and its image rows in one commit.

    Returns:
        Created product dict

    Raises:
        StorageError: an image could not be written (no row created)
    """
    stored = store_images(storage, req.images)

    p = Product()
    apply_product_patch(p, req.fields.as_patch())
    p.images = [ProductImage(url=obj.url, storage_key=obj.key) for obj in stored]
    db.session.add(p)

    _commit_or_discard(storage, stored, "product create")
    current_app.logger.info("Created product id=%s with %d image(s)", p.id, len(stored))
    return p.to_dict()


def update_product(req: UpdateProductRequest, *, storage) -> dict:
    """
    Update scalar fields and append newly attached images.

    Existing images are left untouched; removing one goes through
    delete_product_image().

    Raises:
        NotFoundError: unknown product id (checked before any file is written)
        StorageError: an image could not be written (product unchanged)
    """
    p = _get_product_or_404(req.product_id)

    stored = store_images(storage, req.images)

    apply_product_patch(p, req.fields.as_patch())
    for obj in stored:
        p.images.append(ProductImage(url=obj.url, storage_key=obj.key))

    _commit_or_discard(storage, stored, f"product update id={p.id}")
    return p.to_dict()


def delete_product(req: DeleteProductRequest, *, storage) -> None:
    """
    Delete a product, its image rows and (best-effort) their backing objects.

    Raises:
        NotFoundError: unknown product id
    """
    p = _get_product_or_404(req.product_id)

    for image in p.images:
        try:
            storage.delete(image.storage_key)
        except StorageError:
            # Advisory cleanup: the row deletion below still happens
            current_app.logger.warning(
                "Failed to delete backing file for product id=%s image id=%s key=%s",
                p.id, image.id, image.storage_key,
                exc_info=True,
            )

    db.session.delete(p)
    db.session.commit()
    current_app.logger.info("Deleted product id=%s", req.product_id)


def delete_product_image(image_id: int, *, storage) -> None:
    """
    Delete one image: backing object first, then the row.

    Raises:
        NotFoundError: unknown image id
    """
    image = db.session.get(ProductImage, image_id)
    if image is None:
        raise NotFoundError("Image not found")

    try:
        storage.delete(image.storage_key)
    except StorageError:
        current_app.logger.warning(
            "Failed to delete backing file for image id=%s key=%s",
            image.id, image.storage_key,
            exc_info=True,
        )

    db.session.delete(image)
    db.session.commit()
