# backend/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv

load_dotenv()

from config import settings
from database import init_db
from utils.errors import StockError

from routes.auth import router as auth_router
from routes.admin import router as admin_router
from routes.manager import router as manager_router
from routes.logs import router as logs_router
from routes.categories import router as categories_router
from routes.stock import router as stock_router

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("Database schema ready")
    yield


app = FastAPI(title="Stock Management API", version="1.0.0", lifespan=lifespan)

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


# Ledger and lookup failures carry their own status code and a user-facing message
@app.exception_handler(StockError)
async def stock_error_handler(request: Request, exc: StockError):
    if exc.status_code >= 500:
        logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    else:
        logger.info("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    content = {"detail": exc.message}
    field = getattr(exc, "field", None)
    if field:
        content["field"] = field
    available = getattr(exc, "available", None)
    if available is not None:
        content["available"] = available
    return JSONResponse(status_code=exc.status_code, content=content)


app.include_router(auth_router)
app.include_router(admin_router)
app.include_router(manager_router)
app.include_router(logs_router)
app.include_router(categories_router)
app.include_router(stock_router, prefix="/stock")


@app.get("/")
def read_root():
    return {"message": "Stock Management API is running"}
