import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from pymongo.errors import PyMongoError
from app.core.config import settings
from app.core.database import init_db
from app.core.errors import AppError, ErrorKind
from app.core.log_config import configure_logging
from app.routers import auth, business, inventory, sale, expense

configure_logging()
logger = logging.getLogger(__name__)

# ---------------------------------------------------------
# 1. LIFESPAN MANAGER
# ---------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    # --- STARTUP ---
    logger.info("Initialization started...")
    client = await init_db()
    logger.info("Connected to database '%s'", settings.DATABASE_NAME)

    yield

    # --- SHUTDOWN ---
    client.close()
    logger.info("System shutting down...")

# ---------------------------------------------------------
# 2. APP INITIALIZATION
# ---------------------------------------------------------
app = FastAPI(
    title=settings.APP_NAME,
    lifespan=lifespan,
    description="Bookkeeping API for small businesses: sales, expenses and a stock-movement ledger"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------
# 3. ERROR MAPPING
# ---------------------------------------------------------
STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.VALIDATION: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    status_code = STATUS_BY_KIND[exc.kind]
    log = logger.error if exc.kind == ErrorKind.INTERNAL else logger.info
    log("%s %s -> %d %s: %s", request.method, request.url.path, status_code, exc.code, exc.message)
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "code": exc.code},
    )


@app.exception_handler(PyMongoError)
async def storage_error_handler(request: Request, exc: PyMongoError):
    logger.error("%s %s -> storage failure: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Storage unavailable", "code": "storage_unavailable"},
    )

# ---------------------------------------------------------
# 4. ROUTERS
# ---------------------------------------------------------
API_PREFIX = "/api/v1"
BUSINESS_SCOPE = API_PREFIX + "/businesses/{business_id}"

app.include_router(auth.router, prefix=f"{API_PREFIX}/auth", tags=["Authentication"])
app.include_router(business.router, prefix=f"{API_PREFIX}/businesses", tags=["Business Management"])
app.include_router(inventory.router, prefix=f"{BUSINESS_SCOPE}/inventory/products", tags=["Inventory Management"])
app.include_router(sale.router, prefix=f"{BUSINESS_SCOPE}/sales", tags=["Sales Management"])
app.include_router(expense.router, prefix=f"{BUSINESS_SCOPE}/expenses", tags=["Expense Management"])


@app.get("/", tags=["System"])
async def root():
    return {"system": settings.APP_NAME, "status": "Online", "documentation": "/docs"}


@app.get("/health", tags=["System"])
async def health_check():
    return {"status": "ok"}
