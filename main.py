from contextlib import asynccontextmanager
from fastapi import FastAPI
import logging

from config.settings import settings
from routes import router, functions_router
from seed import init_database
from utils.cors import APICORSMiddleware
from utils.function_errors import FunctionError, function_error_handler

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown logic"""
    try:
        init_database()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.warning(f"Database initialization failed: {e}")
    yield
    logger.info("Shutting down...")

app = FastAPI(
    title=settings.API_TITLE,
    version=settings.API_VERSION,
    lifespan=lifespan,
    description=settings.API_DESCRIPTION
)

app.add_middleware(
    APICORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials="*" not in settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)

app.add_exception_handler(FunctionError, function_error_handler)


@app.get("/")
def read_root():
    return {
        "message": "Mystic Vastra Inventory API is running!",
        "version": settings.API_VERSION,
        "status": "healthy",
    }

@app.get("/health")
def health_check():
    """Health check endpoint for monitoring"""
    return {"status": "healthy", "service": "mystic-vastra-api", "configured": settings.is_configured}


# Register routes
app.include_router(router, prefix="/api")
app.include_router(functions_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
