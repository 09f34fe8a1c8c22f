# backend/main.py
import logging
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from config import settings
from database import init_db
from utils.errors import DomainError, ErrorKind

# Routers
from routes.cart import router as cart_router
from routes.coupons import router as coupons_router
from routes.orders import router as orders_router
from routes.admin import router as admin_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Storefront Checkout API", version="1.0.0")

# Tables are created on startup so importing the app has no side effects
@app.on_event("startup")
def on_startup():
    init_db()

# CORS Configuration
origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
if settings.FRONTEND_URL and settings.FRONTEND_URL not in origins:
    origins.append(settings.FRONTEND_URL)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Error envelope: {"success": false, "error": KIND, "message": ..., "details": [...]}
@app.exception_handler(DomainError)
def domain_error_handler(request: Request, exc: DomainError):
    headers = {"WWW-Authenticate": "Bearer"} if exc.kind == ErrorKind.UNAUTHENTICATED else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)

@app.exception_handler(RequestValidationError)
def validation_error_handler(request: Request, exc: RequestValidationError):
    details = [
        {"field": ".".join(str(p) for p in err["loc"] if p != "body"), "message": err["msg"]}
        for err in exc.errors()
    ]
    err = DomainError(ErrorKind.VALIDATION_ERROR, "Invalid request data", details)
    return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=err.to_dict())

@app.exception_handler(SQLAlchemyError)
def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Storage failure on %s %s", request.method, request.url.path)
    err = DomainError(ErrorKind.INTERNAL_ERROR, "Internal server error")
    return JSONResponse(status_code=err.status_code, content=err.to_dict())

# Register routers
app.include_router(cart_router)
app.include_router(coupons_router)
app.include_router(orders_router)
app.include_router(admin_router)

@app.get("/")
def read_root():
    return {"message": "Storefront Checkout API is running", "currency": settings.CURRENCY}
