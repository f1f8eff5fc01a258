import logging
import os
import time
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, File, Request, Response, UploadFile, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from pymongo.database import Database

from storefront import config, orders, products, reviews, uploads, users
from storefront.database import ensure_indexes, get_db
from storefront.errors import register_exception_handlers
from storefront.logs import configure_logging, set_request_id
from storefront.payments import PaymentGateway, get_payment_gateway
from storefront.permissions import authorize_roles
from storefront.schemas import (
    LoginInput,
    OrderIn,
    OrderPayment,
    PasswordUpdate,
    ProductIn,
    ProductUpdate,
    RegisterInput,
    ReviewIn,
    ReviewUpdate,
    UserUpdate,
)
from storefront.security import Principal, attach_session_cookie, clear_session_cookie, get_current_user

logger = logging.getLogger("storefront.main")

api = APIRouter(prefix=config.API_PREFIX)

admin_only = authorize_roles("admin")


# Auth routes

@api.post("/auth/register", status_code=status.HTTP_201_CREATED, tags=["auth"])
def register(payload: RegisterInput, db: Database = Depends(get_db)):
    return {"user": users.register(db, payload)}


@api.post("/auth/login", tags=["auth"])
def login(payload: LoginInput, response: Response, db: Database = Depends(get_db)):
    token, principal = users.login(db, payload)
    attach_session_cookie(response, token)
    return {"msg": "Login Successful", "user": principal.to_claims()}


@api.get("/auth/logout", tags=["auth"])
def logout(response: Response):
    clear_session_cookie(response)
    return {"msg": "Logout Successful"}


# User routes

@api.get("/users", tags=["users"])
def list_users(db: Database = Depends(get_db), _: Principal = Depends(admin_only)):
    items = users.list_users(db)
    return {"users": items, "count": len(items)}


# Must be registered before /users/{user_id}
@api.get("/users/showMe", tags=["users"])
def show_current_user(current_user: Principal = Depends(get_current_user)):
    return {"user": current_user.to_claims()}


@api.patch("/users/updateUser", tags=["users"])
def update_user(payload: UserUpdate, response: Response, db: Database = Depends(get_db),
                current_user: Principal = Depends(get_current_user)):
    token, principal = users.update_profile(db, current_user, payload)
    attach_session_cookie(response, token)
    return {"msg": "Update user successful", "user": principal.to_claims()}


@api.patch("/users/updateUserPassword", tags=["users"])
def update_user_password(payload: PasswordUpdate, db: Database = Depends(get_db),
                         current_user: Principal = Depends(get_current_user)):
    users.update_password(db, current_user, payload)
    return {"msg": "Success!! Password updated"}


@api.get("/users/{user_id}", tags=["users"])
def get_user(user_id: str, db: Database = Depends(get_db), current_user: Principal = Depends(get_current_user)):
    return {"user": users.get_user(db, current_user, user_id)}


# Product routes

@api.get("/products", tags=["products"])
def list_products(db: Database = Depends(get_db)):
    items = products.list_products(db)
    return {"products": items, "count": len(items)}


@api.post("/products", status_code=status.HTTP_201_CREATED, tags=["products"])
def create_product(data: ProductIn, db: Database = Depends(get_db), current_user: Principal = Depends(admin_only)):
    return {"product": products.create_product(db, current_user, data)}


@api.post("/products/uploadImage", tags=["products"])
def upload_image(image: Optional[UploadFile] = File(default=None), _: Principal = Depends(admin_only)):
    return {"msg": "upload image success", "image": uploads.save_product_image(image)}


@api.get("/products/{product_id}", tags=["products"])
def get_product(product_id: str, db: Database = Depends(get_db)):
    return {"product": products.get_product(db, product_id)}


@api.get("/products/{product_id}/reviews", tags=["products"])
def get_product_reviews(product_id: str, db: Database = Depends(get_db)):
    items = reviews.list_for_product(db, product_id)
    return {"reviews": items, "count": len(items)}


@api.patch("/products/{product_id}", tags=["products"])
def update_product(product_id: str, data: ProductUpdate, db: Database = Depends(get_db),
                   _: Principal = Depends(admin_only)):
    return {"product": products.update_product(db, product_id, data)}


@api.delete("/products/{product_id}", tags=["products"])
def delete_product(product_id: str, db: Database = Depends(get_db), _: Principal = Depends(admin_only)):
    products.delete_product(db, product_id)
    return {"msg": "Delete Successful"}


# Review routes

@api.get("/reviews", tags=["reviews"])
def list_reviews(db: Database = Depends(get_db)):
    items = reviews.list_reviews(db)
    return {"reviews": items, "count": len(items)}


@api.get("/reviews/{review_id}", tags=["reviews"])
def get_review(review_id: str, db: Database = Depends(get_db)):
    return {"review": reviews.get_review(db, review_id)}


@api.post("/reviews", status_code=status.HTTP_201_CREATED, tags=["reviews"])
def create_review(payload: ReviewIn, db: Database = Depends(get_db),
                  current_user: Principal = Depends(get_current_user)):
    return {"review": reviews.create_review(db, current_user, payload)}


@api.patch("/reviews/{review_id}", tags=["reviews"])
def update_review(review_id: str, payload: ReviewUpdate, db: Database = Depends(get_db),
                  current_user: Principal = Depends(get_current_user)):
    return {"review": reviews.update_review(db, current_user, review_id, payload)}


@api.delete("/reviews/{review_id}", tags=["reviews"])
def delete_review(review_id: str, db: Database = Depends(get_db),
                  current_user: Principal = Depends(get_current_user)):
    reviews.delete_review(db, current_user, review_id)
    return {"msg": "Delete Successful"}


# Order routes

@api.get("/orders", tags=["orders"])
def get_all_orders(db: Database = Depends(get_db), _: Principal = Depends(admin_only)):
    items = orders.get_all_orders(db)
    return {"orders": items, "count": len(items)}


# Must be registered before /orders/{order_id}
@api.get("/orders/showAllMyOrders", tags=["orders"])
def get_current_user_orders(db: Database = Depends(get_db), current_user: Principal = Depends(get_current_user)):
    items = orders.get_current_user_orders(db, current_user)
    return {"orders": items, "count": len(items)}


@api.get("/orders/{order_id}", tags=["orders"])
def get_order(order_id: str, db: Database = Depends(get_db), current_user: Principal = Depends(get_current_user)):
    return {"order": orders.get_order(db, current_user, order_id)}


@api.post("/orders", status_code=status.HTTP_201_CREATED, tags=["orders"])
def create_order(payload: OrderIn, db: Database = Depends(get_db),
                 current_user: Principal = Depends(get_current_user),
                 gateway: PaymentGateway = Depends(get_payment_gateway)):
    order, client_secret = orders.create_order(db, current_user, payload, gateway)
    return {"order": order, "client_secret": client_secret}


@api.patch("/orders/{order_id}", tags=["orders"])
def update_order(order_id: str, payload: OrderPayment, db: Database = Depends(get_db),
                 current_user: Principal = Depends(get_current_user)):
    return {"order": orders.pay_order(db, current_user, order_id, payload)}


@asynccontextmanager
async def lifespan(app: FastAPI):
    database = app.dependency_overrides.get(get_db, get_db)()
    ensure_indexes(database)
    logger.info("Indexes ensured on %s", database.name)
    yield


def create_app() -> FastAPI:
    app = FastAPI(title=config.APP_NAME, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def _request_log(request: Request, call_next):
        rid = request.headers.get("x-request-id") or uuid.uuid4().hex
        set_request_id(rid)
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        response.headers["x-request-id"] = rid
        logger.info("%s %s %s %.1fms", request.method, request.url.path, response.status_code, elapsed_ms)
        return response

    register_exception_handlers(app)

    @app.get("/")
    def read_root():
        return {"message": "Storefront API"}

    app.include_router(api)
    app.mount(config.UPLOAD_URL_PREFIX, StaticFiles(directory=config.UPLOAD_DIR, check_dir=False), name="uploads")

    return app


configure_logging(config.LOG_LEVEL)
app = create_app()


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
