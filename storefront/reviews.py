"""
Reviews and the product rating aggregate.

Every write that changes a product's review set ends by calling
``recalculate_product_rating`` so ``average_rating`` / ``num_of_reviews``
always describe the reviews currently stored for that product.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Tuple

from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from storefront.errors import ConflictError, NotFoundError, ValidationFailure
from storefront.permissions import require_owner
from storefront.security import Principal
from storefront.database import create_document, find_by_id, populate, serialize_doc, utcnow
from storefront.schemas import Review, ReviewIn, ReviewUpdate

logger = logging.getLogger("storefront.reviews")


def compute_rating(db: Database, product_id: str) -> Tuple[float, int]:
    result = list(db["review"].aggregate([
        {"$match": {"product_id": product_id}},
        {
            "$group": {
                "_id": None,
                "average_rating": {"$avg": "$rating"},
                "num_of_reviews": {"$sum": 1},
            }
        },
    ]))
    # No reviews: the group stage yields nothing
    if not result:
        return 0, 0
    # Half-up to one decimal, so 4.25 becomes 4.3 rather than round()'s 4.2
    average = Decimal(str(result[0]["average_rating"])).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
    return float(average), int(result[0]["num_of_reviews"])


def recalculate_product_rating(db: Database, product_id: str) -> None:
    average, count = compute_rating(db, product_id)
    product = find_by_id(db, "product", product_id)
    if not product:
        return
    db["product"].update_one(
        {"_id": product["_id"]},
        {"$set": {"average_rating": average, "num_of_reviews": count}},
    )
    logger.debug("Rating of product %s recalculated: %s over %d review(s)", product_id, average, count)


def _load_review(db: Database, review_id: str) -> Dict[str, Any]:
    review = find_by_id(db, "review", review_id)
    if not review:
        raise NotFoundError(f"No review with id: {review_id}")
    return review


def list_reviews(db: Database) -> List[Dict[str, Any]]:
    docs = [serialize_doc(r) for r in db["review"].find({})]
    docs = populate(db, docs, "product_id", "product", "product", ["name"])
    return populate(db, docs, "user_id", "user", "user", ["name"])


def get_review(db: Database, review_id: str) -> Dict[str, Any]:
    docs = [serialize_doc(_load_review(db, review_id))]
    docs = populate(db, docs, "product_id", "product", "product", ["name", "company"])
    return populate(db, docs, "user_id", "user", "user", ["name"])[0]


def list_for_product(db: Database, product_id: str) -> List[Dict[str, Any]]:
    product = find_by_id(db, "product", product_id)
    if not product:
        raise NotFoundError(f"No product with id: {product_id}")
    docs = [serialize_doc(r) for r in db["review"].find({"product_id": str(product["_id"])})]
    return populate(db, docs, "user_id", "user", "user", ["name"])


def create_review(db: Database, principal: Principal, payload: ReviewIn) -> Dict[str, Any]:
    product = find_by_id(db, "product", payload.product_id)
    if not product:
        raise NotFoundError(f"No product with id: {payload.product_id}")
    product_id = str(product["_id"])
    review = Review(
        rating=payload.rating,
        title=payload.title,
        comment=payload.comment,
        user_id=principal.user_id,
        product_id=product_id,
    )
    try:
        review_id = create_document(db, "review", review)
    except DuplicateKeyError:
        raise ConflictError("Already submitted review for this product")
    recalculate_product_rating(db, product_id)
    return serialize_doc(find_by_id(db, "review", review_id))


def update_review(db: Database, principal: Principal, review_id: str, payload: ReviewUpdate) -> Dict[str, Any]:
    review = _load_review(db, review_id)
    require_owner(principal, review["user_id"], "update")
    changes = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    if not changes:
        raise ValidationFailure("No fields to update")
    changes["updated_at"] = utcnow()
    db["review"].update_one({"_id": review["_id"]}, {"$set": changes})
    recalculate_product_rating(db, review["product_id"])
    return serialize_doc(find_by_id(db, "review", review_id))


def delete_review(db: Database, principal: Principal, review_id: str) -> None:
    review = _load_review(db, review_id)
    require_owner(principal, review["user_id"], "delete")
    db["review"].delete_one({"_id": review["_id"]})
    recalculate_product_rating(db, review["product_id"])


def delete_reviews_for_product(db: Database, product_id: str) -> int:
    """Cascade step of product deletion; the product goes away next, so no recalculation."""
    result = db["review"].delete_many({"product_id": product_id})
    return result.deleted_count
