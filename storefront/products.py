import logging
from typing import Any, Dict, List

from pymongo.database import Database

from storefront.errors import NotFoundError, ValidationFailure
from storefront.security import Principal
from storefront.database import create_document, find_by_id, get_documents, serialize_doc, utcnow
from storefront.schemas import Product, ProductIn, ProductUpdate
from storefront import reviews

logger = logging.getLogger("storefront.products")


def list_products(db: Database) -> List[Dict[str, Any]]:
    return get_documents(db, "product")


def get_product(db: Database, product_id: str) -> Dict[str, Any]:
    product = find_by_id(db, "product", product_id)
    if not product:
        raise NotFoundError(f"No product with id: {product_id}")
    return serialize_doc(product)


def create_product(db: Database, principal: Principal, data: ProductIn) -> Dict[str, Any]:
    product = Product(**data.model_dump(), user_id=principal.user_id)
    product_id = create_document(db, "product", product)
    logger.info("Product %s created by %s", product_id, principal.user_id)
    return get_product(db, product_id)


def update_product(db: Database, product_id: str, data: ProductUpdate) -> Dict[str, Any]:
    update_dict = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
    if not update_dict:
        raise ValidationFailure("No fields to update")
    product = find_by_id(db, "product", product_id)
    if not product:
        raise NotFoundError(f"No product with id: {product_id}")
    update_dict["updated_at"] = utcnow()
    db["product"].update_one({"_id": product["_id"]}, {"$set": update_dict})
    return get_product(db, product_id)


def delete_product(db: Database, product_id: str) -> None:
    product = find_by_id(db, "product", product_id)
    if not product:
        raise NotFoundError(f"No product with id: {product_id}")
    removed = reviews.delete_reviews_for_product(db, str(product["_id"]))
    db["product"].delete_one({"_id": product["_id"]})
    logger.info("Product %s deleted along with %d review(s)", product_id, removed)
