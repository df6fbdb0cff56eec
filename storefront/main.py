# storefront/main.py
from contextlib import asynccontextmanager
import logging

from fastapi.middleware.cors import CORSMiddleware
from fastapi import FastAPI
from sqlmodel import SQLModel

from storefront.core.config import get_settings
from storefront.database import create_db_and_tables, engine

# Import models so SQLModel metadata is populated before create_all()
from storefront.models import user as _user_models  # noqa: F401
from storefront.models import category as _category_models  # noqa: F401
from storefront.models import product as _product_models  # noqa: F401
from storefront.models import cart as _cart_models  # noqa: F401
from storefront.models import promotion as _promotion_models  # noqa: F401
from storefront.models import order as _order_models  # noqa: F401
from storefront.models import wishlist as _wishlist_models  # noqa: F401


# Routers
from storefront.routers.users import router as users_router
from storefront.routers.categories import router as categories_router
from storefront.routers.products import router as products_router
from storefront.routers.cart import router as cart_router
from storefront.routers.promotions import router as promotions_router
from storefront.routers.orders import router as orders_router
from storefront.routers.wishlist import router as wishlist_router

settings = get_settings()

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger("uvicorn")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Create the storefront tables on startup and release the engine's
    pooled connections on shutdown.
    """
    logger.info("Storefront: preparing %s schema", engine.dialect.name)
    try:
        create_db_and_tables()
    except Exception:
        logger.exception("Storefront: schema setup failed, refusing to start")
        raise
    logger.info(
        "Storefront: %d tables ready, serving under %s",
        len(SQLModel.metadata.tables),
        settings.API_V1_STR,
    )
    yield
    engine.dispose()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


# --- CORS configuration ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Versioned API prefix, e.g. /api/v1
app.include_router(users_router, prefix=settings.API_V1_STR)
app.include_router(categories_router, prefix=settings.API_V1_STR)
app.include_router(products_router, prefix=settings.API_V1_STR)
app.include_router(cart_router, prefix=settings.API_V1_STR)
app.include_router(promotions_router, prefix=settings.API_V1_STR)
app.include_router(orders_router, prefix=settings.API_V1_STR)
app.include_router(wishlist_router, prefix=settings.API_V1_STR)


@app.get("/")
def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "storefront-api"}
