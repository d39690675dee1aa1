import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from starlette.middleware.base import BaseHTTPMiddleware
from bookshare.config import settings
from bookshare.database import init_db
from bookshare.routes import books, mini_app, bot
from bookshare.services.errors import LibraryError
from bookshare.services.telegram import telegram_client

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log incoming requests."""
    async def dispatch(self, request: Request, call_next):
        auth_header = request.headers.get("Authorization")
        client_ip = request.client.host if request.client else "unknown"
        logger.info(f"{request.method} {request.url.path} - IP: {client_ip} - Auth: {'Present' if auth_header else 'Missing'}")

        response = await call_next(request)
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and seed locations on startup, release the Telegram client on shutdown."""
    logger.info("Initialising database...")
    init_db()

    yield

    logger.info("Closing Telegram client...")
    telegram_client.close()


app = FastAPI(
    title="Community Library API",
    description="Catalog, borrowing and returning for the community library bot and mini app",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Logging middleware (last, to log everything)
app.add_middleware(LoggingMiddleware)


@app.exception_handler(LibraryError)
async def library_error_handler(request: Request, exc: LibraryError):
    logger.info(f"{request.method} {request.url.path} -> {exc.code}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Include routers
app.include_router(books.router)
app.include_router(mini_app.router)
app.include_router(bot.router)

@app.get("/")
async def root():
    return {"message": "Community Library API", "version": "1.0.0"}

@app.get("/api/health")
async def health_check():
    return {"status": "healthy"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "bookshare.main:app",
        host=settings.host,
        port=settings.port,
        reload=True
    )
