from __future__ import annotations

from ..extensions import db
from thriftshop.time_utils import to_utc_z


class Product(db.Model):
    """
    Secondhand product listing.

    Images are owned by the product: deleting the product deletes every
    ProductImage row (cascade). Backing files/blobs are cleaned up by the
    products service before the row is removed.

    description holds rich text with literal "<br/>" line markers, exactly as
    submitted by the product form.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
        db.CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        db.Index("ix_products_category", "category"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False)
    size = db.Column(db.String(32), nullable=False)

    # Decimal, two places (e.g. Rupiah amounts like 50000.00)
    price = db.Column(db.Numeric(12, 2), nullable=False)
    stock = db.Column(db.Integer, nullable=False, default=0)
    category = db.Column(db.String(64), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    images = db.relationship(
        "ProductImage",
        back_populates="product",
        order_by="ProductImage.id",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} category={self.category!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "size": self.size,
            "price": f"{self.price:.2f}" if self.price is not None else None,
            "stock": self.stock,
            "category": self.category,
            "images": [image.to_dict() for image in self.images],
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class ProductImage(db.Model):
    """
    One stored image of a product.

    storage_key is whatever the storage backend needs to delete the object
    (a file name for local storage, a public_id for the remote media host).
    It is recorded at upload time so deletion never has to parse the URL.
    """
    __tablename__ = "product_images"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    url = db.Column(db.String(1024), nullable=False)
    storage_key = db.Column(db.String(512), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", back_populates="images")

    def __repr__(self) -> str:
        return f"<ProductImage id={self.id} product_id={self.product_id} key={self.storage_key!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "url": self.url,
            "created_at": to_utc_z(self.created_at),
        }
