import logging
from typing import Any, Dict, List, Tuple

from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from storefront.errors import ConflictError, NotFoundError, UnauthorizedError
from storefront.permissions import check_permission
from storefront.security import Principal, create_access_token, hash_password, verify_password
from storefront.database import create_document, find_by_id, serialize_doc, utcnow
from storefront.schemas import LoginInput, PasswordUpdate, RegisterInput, Role, User, UserUpdate

logger = logging.getLogger("storefront.users")

PUBLIC_FIELDS = {"password_hash": 0}


def public_user(doc: Dict[str, Any]) -> Dict[str, Any]:
    user = serialize_doc(doc)
    # Never send password hash
    user.pop("password_hash", None)
    return user


def register(db: Database, payload: RegisterInput) -> Dict[str, Any]:
    email = payload.email.lower()
    if db["user"].find_one({"email": email}):
        raise ConflictError("Email is already registered")
    user_model = User(
        name=payload.name,
        email=email,
        password_hash=hash_password(payload.password),
        role="user",
    )
    try:
        user_id = create_document(db, "user", user_model)
    except DuplicateKeyError:
        # Lost a race against a concurrent registration
        raise ConflictError("Email is already registered")
    logger.info("Registered user %s", user_id)
    return public_user(find_by_id(db, "user", user_id))


def login(db: Database, payload: LoginInput) -> Tuple[str, Principal]:
    user = db["user"].find_one({"email": payload.email.lower()})
    if not user:
        raise NotFoundError("User not found, please double-check the email for accuracy")
    if not verify_password(payload.password, user.get("password_hash", "")):
        logger.info("Failed login for user %s", user["_id"])
        raise UnauthorizedError("Password incorrect. Please double-check the password")
    principal = Principal.from_user(user)
    logger.info("User %s logged in", principal.user_id)
    return create_access_token(principal), principal


def list_users(db: Database) -> List[Dict[str, Any]]:
    return [public_user(u) for u in db["user"].find({"role": "user"}, PUBLIC_FIELDS)]


def get_user(db: Database, principal: Principal, user_id: str) -> Dict[str, Any]:
    check_permission(principal, user_id)
    user = find_by_id(db, "user", user_id, PUBLIC_FIELDS)
    if not user:
        raise NotFoundError(f"No user with id: {user_id}")
    return public_user(user)


def update_profile(db: Database, principal: Principal, payload: UserUpdate) -> Tuple[str, Principal]:
    """Store the new name/email and return a token reflecting them."""
    user = find_by_id(db, "user", principal.user_id)
    if not user:
        raise NotFoundError(f"No user with id: {principal.user_id}")
    changes = {"name": payload.name, "email": payload.email.lower(), "updated_at": utcnow()}
    if db["user"].find_one({"email": changes["email"], "_id": {"$ne": user["_id"]}}):
        raise ConflictError("Email is already registered")
    try:
        db["user"].update_one({"_id": user["_id"]}, {"$set": changes})
    except DuplicateKeyError:
        raise ConflictError("Email is already registered")
    principal = Principal.from_user({**user, **changes})
    return create_access_token(principal), principal


def update_password(db: Database, principal: Principal, payload: PasswordUpdate) -> None:
    user = find_by_id(db, "user", principal.user_id)
    if not user:
        raise NotFoundError(f"No user with id: {principal.user_id}")
    if not verify_password(payload.old_password, user.get("password_hash", "")):
        raise UnauthorizedError("Password incorrect. Please double-check the old password")
    db["user"].update_one(
        {"_id": user["_id"]},
        {"$set": {"password_hash": hash_password(payload.new_password), "updated_at": utcnow()}},
    )
    logger.info("Password updated for user %s", principal.user_id)


def set_role(db: Database, email: str, role: Role) -> Dict[str, Any]:
    """Out-of-band role assignment; no HTTP route reaches this."""
    res = db["user"].update_one({"email": email.lower()}, {"$set": {"role": role, "updated_at": utcnow()}})
    if res.matched_count == 0:
        raise NotFoundError(f"No user with email: {email}")
    logger.info("Role of %s set to %s", email.lower(), role)
    return public_user(db["user"].find_one({"email": email.lower()}))
