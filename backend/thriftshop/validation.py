from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable, Mapping


# Maximum price: 999,999,999.99 (fits Numeric(12, 2))
MAX_PRICE = Decimal("999999999.99")

PRODUCT_FIELDS = ("name", "description", "size", "price", "stock", "category")

ALLOWED_IMAGE_TYPES = frozenset({"image/jpeg", "image/jpg", "image/png", "image/webp"})

# Column lengths (see models/catalog.py)
_MAX_LENGTHS = {"name": 255, "size": 32, "category": 64}


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """Business rule conflict (e.g., new password equal to the old one)."""


class NotFoundError(LookupError):
    """404-level: the identifier does not match a record."""


class AuthenticationError(Exception):
    """Bad or missing credentials."""


class AuthorizationError(Exception):
    """Authenticated, but not allowed through this gate."""


class FederatedAccountError(AuthorizationError):
    """Local credential operation attempted on a federated-only account."""


class StorageError(Exception):
    """File or blob write/delete failure."""


class UpstreamError(Exception):
    """Third-party API or mail dispatch failure. Message is safe to show to users."""


@dataclass(frozen=True)
class ImageUpload:
    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class ProductFields:
    name: str
    description: str
    size: str
    price: Decimal
    stock: int
    category: str

    def as_patch(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "size": self.size,
            "price": self.price,
            "stock": self.stock,
            "category": self.category,
        }


@dataclass(frozen=True)
class CreateProductRequest:
    fields: ProductFields
    images: tuple[ImageUpload, ...] = ()


@dataclass(frozen=True)
class UpdateProductRequest:
    product_id: int
    fields: ProductFields
    images: tuple[ImageUpload, ...] = ()


@dataclass(frozen=True)
class DeleteProductRequest:
    product_id: int


def parse_price(raw: Any) -> Decimal:
    if isinstance(raw, bool):
        raise ValidationError("price must be a number")
    try:
        price = Decimal(str(raw).strip())
    except InvalidOperation:
        raise ValidationError("price must be a number")
    if not price.is_finite():
        raise ValidationError("price must be a number")
    if price < 0:
        raise ValidationError("price must be >= 0")
    if price > MAX_PRICE:
        raise ValidationError(f"price cannot exceed {MAX_PRICE:,}")
    return price.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def parse_stock(raw: Any) -> int:
    # Strict: reject floats, decimals and scientific notation
    if isinstance(raw, bool):
        raise ValidationError("stock must be an integer")
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, str):
        stripped = raw.strip()
        if not stripped:
            raise ValidationError("stock must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError("stock must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError("stock must be an integer (no decimals)")
        try:
            value = int(stripped)
        except ValueError:
            raise ValidationError("stock must be an integer")
    else:
        raise ValidationError("stock must be an integer")

    if value < 0:
        raise ValidationError("stock must be >= 0")
    return value


def parse_identifier(raw: Any, label: str = "ID") -> int:
    if raw is None or str(raw).strip() == "":
        raise ValidationError(f"{label} is required")
    try:
        value = int(str(raw).strip())
    except ValueError:
        raise ValidationError(f"{label} must be an integer")
    if value <= 0:
        raise ValidationError(f"{label} must be a positive integer")
    return value


def parse_product_fields(form: Mapping[str, Any]) -> ProductFields:
    """
    Validate the six scalar product fields.

    All fields are required. Text fields are stripped and must not be blank;
    price must be a non-negative decimal and stock a non-negative integer.
    """
    missing = [f for f in PRODUCT_FIELDS if form.get(f) is None or str(form.get(f)).strip() == ""]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    text = {}
    for key in ("name", "description", "size", "category"):
        value = str(form.get(key)).strip()
        limit = _MAX_LENGTHS.get(key)
        if limit and len(value) > limit:
            raise ValidationError(f"{key} exceeds max length {limit}")
        text[key] = value

    return ProductFields(
        name=text["name"],
        description=text["description"],
        size=text["size"],
        price=parse_price(form.get("price")),
        stock=parse_stock(form.get("stock")),
        category=text["category"],
    )


def validate_image(filename: str, content_type: str | None, size: int, max_bytes: int) -> None:
    """Reject files over the size ceiling or outside the MIME allow-list."""
    if not filename:
        raise ValidationError("Image file name is required")
    if size > max_bytes:
        raise ValidationError(
            f"Image {filename} is too large. Maximum file size is {max_bytes // (1024 * 1024)}MB."
        )
    if (content_type or "").lower() not in ALLOWED_IMAGE_TYPES:
        raise ValidationError(
            f"Image {filename} has an unsupported type. Only JPEG, JPG, PNG and WebP are allowed."
        )


def read_image_uploads(files: Iterable[Any], max_bytes: int) -> tuple[ImageUpload, ...]:
    """
    Validate and read multipart image parts (werkzeug FileStorage objects).

    Empty parts (no file selected) are skipped. Any invalid file rejects the
    whole batch, before anything is written anywhere.
    """
    uploads: list[ImageUpload] = []
    for part in files:
        if part is None or not getattr(part, "filename", ""):
            continue
        # Read one byte past the ceiling so oversize files are detected without buffering them whole
        data = part.stream.read(max_bytes + 1)
        validate_image(part.filename, part.mimetype, len(data), max_bytes)
        uploads.append(ImageUpload(filename=part.filename, content_type=part.mimetype.lower(), data=data))
    return tuple(uploads)


def parse_create_request(form: Mapping[str, Any], files: Iterable[Any], max_bytes: int) -> CreateProductRequest:
    fields = parse_product_fields(form)
    return CreateProductRequest(fields=fields, images=read_image_uploads(files, max_bytes))


def parse_update_request(
    form: Mapping[str, Any],
    files: Iterable[Any],
    max_bytes: int,
    product_id: Any = None,
) -> UpdateProductRequest:
    pid = parse_identifier(product_id if product_id is not None else form.get("id"))
    fields = parse_product_fields(form)
    return UpdateProductRequest(product_id=pid, fields=fields, images=read_image_uploads(files, max_bytes))


def parse_delete_request(product_id: Any) -> DeleteProductRequest:
    return DeleteProductRequest(product_id=parse_identifier(product_id))
