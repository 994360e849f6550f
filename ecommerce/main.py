import logging
import sys
from contextlib import asynccontextmanager
from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ecommerce.core.config import config
from ecommerce.core.db.engine import check_database_connection, dispose_engine
from ecommerce.core.error_handler import register_exception_handlers
from ecommerce.core.response_interceptor import (
    SuccessResponseInterceptor,
    CustomAPIRoute,
)
from ecommerce.modules.users.router import router as users_router
from ecommerce.modules.products.router import router as products_router
from ecommerce.modules.product_options.router import router as product_options_router
from ecommerce.modules.variants.router import (
    listing_router as variants_listing_router,
    router as variants_router,
)

# Configure logging to output to console
logging.basicConfig(
    level=config.log_level.upper(),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting E-commerce Catalog API...")
    if not await check_database_connection():
        logger.error("Database is not reachable at startup")
    yield
    await dispose_engine()
    logger.info("E-commerce Catalog API stopped")


def create_app() -> FastAPI:
    app = FastAPI(
        title="E-commerce Catalog API",
        description="Multi-tenant products, options and variants",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Override the default route class to support skip_interceptor decorator
    app.router.route_class = CustomAPIRoute

    register_exception_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add Success Response Interceptor (must be added after CORS)
    app.add_middleware(SuccessResponseInterceptor)

    # Routers are built with CustomAPIRoute so @skip_interceptor works on them
    api = APIRouter(prefix="/api", route_class=CustomAPIRoute)
    api.include_router(users_router)
    api.include_router(products_router)
    api.include_router(product_options_router)
    api.include_router(variants_listing_router)
    api.include_router(variants_router)
    app.include_router(api)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
