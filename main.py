import logging
import os
import re
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

import structlog
from fastapi import Body, Depends, FastAPI, File, Form, Request, UploadFile, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError

from bot import StoreBot
from config import Settings, get_settings
from database import DocumentStore, connect, serialize_doc
from media import CloudinaryMediaHost, stage_upload
from notifications import OrderNotifier, TelegramClient
from schemas import Order, Product, Review, collection_name, describe_errors, validation_details

settings = get_settings()

_processors = [
    structlog.contextvars.merge_contextvars,
    structlog.processors.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
]
if settings.log_format == "json":
    _processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
else:
    _processors.append(structlog.dev.ConsoleRenderer())

structlog.configure(
    processors=_processors,
    wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, settings.log_level, logging.INFO)),
    context_class=dict,
    logger_factory=structlog.PrintLoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the process-wide clients once and release them on shutdown."""
    settings = get_settings()
    app.state.store = connect(settings.database_url, settings.database_name)
    app.state.media = CloudinaryMediaHost(
        settings.cloudinary_cloud_name,
        settings.cloudinary_api_key,
        settings.cloudinary_api_secret,
    )
    telegram = TelegramClient(settings.telegram_bot_token)
    app.state.notifier = OrderNotifier(telegram, settings.telegram_chat_id, settings.notify_timezone)
    app.state.bot = StoreBot(telegram, settings.store_url)
    logger.info(
        "Storefront API started",
        database=settings.database_name,
        media_configured=settings.media_configured,
        bot_configured=settings.bot_configured,
    )
    yield
    telegram.close()
    app.state.store.close()
    logger.info("Storefront API stopped")


# FastAPI app
app = FastAPI(title="Storefront API", version="1.0.0", docs_url="/api-docs", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Dependencies
def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_media_host(request: Request) -> CloudinaryMediaHost:
    return request.app.state.media


def get_notifier(request: Request) -> OrderNotifier:
    return request.app.state.notifier


def get_bot(request: Request) -> StoreBot:
    return request.app.state.bot


# Error responses
def error_response(status_code: int, message: str, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message, "error": str(exc)})


def validation_response(errors: List[Dict[str, str]]) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": "Validation failed", "errors": errors},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.info("Request rejected", path=request.url.path, errors=len(exc.errors()))
    return validation_response(describe_errors(exc.errors()))


def upload_image(image: UploadFile, folder: str, media: CloudinaryMediaHost, upload_dir: str) -> str:
    path = stage_upload(image.file, image.filename, upload_dir)
    return media.upload(path, folder)


# Products
@app.post("/api/products", status_code=status.HTTP_201_CREATED, tags=["products"], summary="Create a product with an image")
def create_product(
    image: UploadFile = File(...),
    name: str = Form(...),
    type_: str = Form(..., alias="type"),
    price: str = Form(...),
    previous_price: Optional[str] = Form(None, alias="previousPrice"),
    description: Optional[str] = Form(None),
    rating: Optional[str] = Form(None),
    rating_count: Optional[str] = Form(None, alias="ratingCount"),
    store: DocumentStore = Depends(get_store),
    media: CloudinaryMediaHost = Depends(get_media_host),
    settings: Settings = Depends(get_settings),
):
    fields: Dict[str, Any] = {
        "name": name,
        "type": type_,
        "price": price,
        "description": description,
        "rating": rating,
        "ratingCount": rating_count,
        # Blank means the product is not discounted. FastAPI already maps
        # blank form fields to None; this also covers direct calls.
        "previousPrice": previous_price or None,
    }
    fields = {k: v for k, v in fields.items() if v is not None}

    try:
        fields["imageUrl"] = upload_image(image, "products", media, settings.upload_dir)
        doc = store.create_document(collection_name(Product), Product(**fields))
    except ValidationError as e:
        return validation_response(validation_details(e))
    except Exception as e:
        logger.exception("Product creation failed", product_name=name)
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Error creating product", e)
    return serialize_doc(doc)


@app.get("/api/products", tags=["products"], summary="List products, optionally filtered by name")
def list_products(name: Optional[str] = None, store: DocumentStore = Depends(get_store)):
    query: Dict[str, Any] = {}
    if name:
        query["name"] = {"$regex": re.escape(name), "$options": "i"}
    try:
        docs = store.get_documents(collection_name(Product), query)
    except Exception as e:
        logger.exception("Product listing failed")
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Error fetching products", e)
    return [serialize_doc(p) for p in docs]


# Reviews
@app.post("/api/reviews", status_code=status.HTTP_201_CREATED, tags=["reviews"], summary="Create a review with an image")
def create_review(
    image: UploadFile = File(...),
    name: str = Form(...),
    rating: str = Form(...),
    comment: str = Form(...),
    store: DocumentStore = Depends(get_store),
    media: CloudinaryMediaHost = Depends(get_media_host),
    settings: Settings = Depends(get_settings),
):
    try:
        image_url = upload_image(image, "reviews", media, settings.upload_dir)
        review = Review(name=name, rating=rating, comment=comment, image_url=image_url)
        doc = store.create_document(collection_name(Review), review)
    except ValidationError as e:
        return validation_response(validation_details(e))
    except Exception as e:
        logger.exception("Review creation failed")
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Error creating review", e)
    return serialize_doc(doc)


@app.get("/api/reviews", tags=["reviews"], summary="List all reviews")
def list_reviews(store: DocumentStore = Depends(get_store)):
    try:
        docs = store.get_documents(collection_name(Review))
    except Exception as e:
        logger.exception("Review listing failed")
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Error fetching reviews", e)
    return [serialize_doc(r) for r in docs]


# Orders
@app.post("/api/orders", status_code=status.HTTP_201_CREATED, tags=["orders"], summary="Place an order")
def create_order(
    payload: Order,
    store: DocumentStore = Depends(get_store),
    notifier: OrderNotifier = Depends(get_notifier),
):
    try:
        doc = store.create_document(collection_name(Order), payload)
    except Exception as e:
        logger.exception("Order creation failed", items=len(payload.order_items))
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Error creating order", e)

    order_id = str(doc["_id"])
    # The order is already stored; a failed notification only gets logged.
    try:
        notifier.notify(payload, order_id)
    except Exception as e:
        logger.warning("Order notification failed", order_id=order_id, error=str(e))

    return {"message": "Order created successfully", "order": serialize_doc(doc)}


# Bot
@app.post("/api/bot/webhook", tags=["bot"], summary="Telegram webhook for the store bot")
def bot_webhook(update: Dict[str, Any] = Body(...), bot: StoreBot = Depends(get_bot)):
    try:
        bot.handle_update(update)
    except Exception:
        logger.exception("Bot update failed", update_id=update.get("update_id"))
    return {"ok": True}


# Health
@app.get("/test", tags=["health"])
def test_database(store: DocumentStore = Depends(get_store), settings: Settings = Depends(get_settings)):
    response = {
        "backend": "✅ Running",
        "database_url": "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set",
        "database_name": "✅ Set" if os.getenv("DATABASE_NAME") else "❌ Not Set",
        "media_host": "✅ Configured" if settings.media_configured else "❌ Not Configured",
        "bot": "✅ Configured" if settings.bot_configured else "❌ Not Configured",
        "collections": [],
    }
    try:
        response["collections"] = store.list_collection_names()[:10]
    except Exception as e:
        response["error"] = str(e)[:120]
    return response


app.mount("/", StaticFiles(directory=settings.static_dir, html=True, check_dir=False), name="static")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
