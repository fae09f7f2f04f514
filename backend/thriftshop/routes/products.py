# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/thriftshop/routes/products.py
"""
Product management routes.

Reads are public (storefront). Writes require an administrator session.

Writes take multipart form data: name, description, size, price, stock,
category and zero or more files under the repeated "images[]" key. The
product id for PUT/DELETE comes from the form or the query string.
"""
from flask import Blueprint, request, current_app
from sqlalchemy.exc import SQLAlchemyError

from ..services import products_service
from ..validation import (
    parse_create_request,
    parse_update_request,
    parse_delete_request,
    parse_identifier,
    ValidationError,
    NotFoundError,
    StorageError,
)
from ..decorators import require_auth, require_admin

IMAGE_FIELD = "images[]"
STORAGE_FAILURE = "Could not store the uploaded images. Please try again."

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _storage():
    return current_app.extensions["storage"]


def _max_image_bytes() -> int:
    return current_app.config["MAX_IMAGE_BYTES"]


def _product_id_arg():
    return request.form.get("id") or request.args.get("id")


@products_bp.get("")
def list_products():
    """
    List products, or fetch one.

    Query params:
    - id: int (optional) - return {"product": ...} for this id
    - category: str (optional) - filter the list
    """
    raw_id = request.args.get("id")
    if raw_id is not None:
        try:
            product_id = parse_identifier(raw_id)
        except ValidationError as e:
            return {"error": str(e)}, 400
        try:
            return {"product": products_service.get_product(product_id)}
        except NotFoundError as e:
            return {"error": str(e)}, 404

    return products_service.list_products(category=request.args.get("category") or None)


@products_bp.post("")
@require_auth
@require_admin
def create_product_route():
    """
    Create a product with its images.

    Validation (fields and every image) happens before anything is written.
    """
    try:
        req = parse_create_request(request.form, request.files.getlist(IMAGE_FIELD), _max_image_bytes())
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        created = products_service.create_product(req, storage=_storage())
    except StorageError:
        return {"error": STORAGE_FAILURE}, 500
    except SQLAlchemyError:
        current_app.logger.exception("Failed to create product name=%s", req.fields.name)
        return {"error": "Failed to create product"}, 500

    return {"product": created}, 200


@products_bp.put("")
@require_auth
@require_admin
def update_product_route():
    """
    Update a product's fields and append any newly attached images.

    Existing images are kept; remove them with DELETE /api/products/images.
    """
    try:
        req = parse_update_request(
            request.form,
            request.files.getlist(IMAGE_FIELD),
            _max_image_bytes(),
            product_id=_product_id_arg(),
        )
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        updated = products_service.update_product(req, storage=_storage())
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except StorageError:
        return {"error": STORAGE_FAILURE}, 500
    except SQLAlchemyError:
        current_app.logger.exception("Failed to update product id=%s", req.product_id)
        return {"error": "Failed to update product"}, 500

    return {"product": updated}, 200


@products_bp.delete("")
@require_auth
@require_admin
def delete_product_route():
    """Delete a product, its image rows and (best-effort) their files."""
    try:
        req = parse_delete_request(_product_id_arg())
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        products_service.delete_product(req, storage=_storage())
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except SQLAlchemyError:
        current_app.logger.exception("Failed to delete product id=%s", req.product_id)
        return {"error": "Failed to delete product"}, 500

    return {"success": True}, 200


@products_bp.delete("/images")
@require_auth
@require_admin
def delete_image_route():
    """
    Delete one product image.

    Query params:
    - id: int (required) - image id
    """
    try:
        image_id = parse_identifier(request.args.get("id"), label="Image ID")
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        products_service.delete_product_image(image_id, storage=_storage())
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except SQLAlchemyError:
        current_app.logger.exception("Failed to delete image id=%s", image_id)
        return {"error": "Failed to delete image"}, 500

    return {"message": "Image deleted successfully"}, 200
