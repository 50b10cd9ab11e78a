from fastapi import FastAPI, APIRouter
from fastapi.middleware.cors import CORSMiddleware
from mangum import Mangum
import logging

from config import CORS_ALLOWED_ORIGINS, ENVIRONMENT, LOG_LEVEL
from routers.orders.orders import router as orders_router
from routers.payments.payments import router as payments_router
from routers.sellers.sellers import router as sellers_router
from routers.webhooks.webhooks import router as webhooks_router

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)

IS_PRODUCTION = ENVIRONMENT == "prod"

app = FastAPI(
    title="Marketplace Payments API",
    description="Seller onboarding, buyer orders and Stripe Connect payments with a platform fee.",
    version="1.0.0",
    root_path="/Prod" if IS_PRODUCTION else "",
    docs_url="/apidocs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    expose_headers=["Content-Length"],
    max_age=600,
)

api_router = APIRouter(prefix="/api")
api_router.include_router(orders_router)
api_router.include_router(payments_router)
api_router.include_router(sellers_router)
api_router.include_router(webhooks_router)


@api_router.get("/health", tags=["Health"])
async def health():
    return {"status": "ok"}


app.include_router(api_router)

handler = Mangum(app)
