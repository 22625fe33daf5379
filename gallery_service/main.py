from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from gallery_service.config import settings
from gallery_service.errors import GalleryError
from gallery_service.routers import paintings as paintings_router
from gallery_service.logging_config import get_logger

logger = get_logger(__name__)

def ensure_directories():
    for directory in (settings.UPLOAD_DIR, settings.DATA_FILE.parent):
        if not directory.exists():
            logger.info(f"Creating directory {directory}")
        directory.mkdir(parents=True, exist_ok=True)

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Gallery Service starting up...")
    ensure_directories()
    logger.info(f"Image storage path configured at: {settings.UPLOAD_DIR.resolve()}")
    logger.info(f"Painting metadata stored in: {settings.DATA_FILE.resolve()}")
    yield
    logger.info("Gallery Service shutting down...")

app = FastAPI(
    title="Gallery Service",
    version="0.1.0",
    lifespan=lifespan
)

@app.middleware("http")
async def catch_unexpected_errors(request: Request, call_next):
    try:
        return await call_next(request)
    except Exception:
        logger.exception(f"Unhandled error during {request.method} {request.url.path}")
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

@app.exception_handler(GalleryError)
async def gallery_error_handler(request: Request, exc: GalleryError):
    logger.warning(f"{request.method} {request.url.path} failed with {exc.status_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

app.include_router(paintings_router.router)
app.mount(
    settings.UPLOAD_URL_PREFIX,
    StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False),
    name="uploads",
)

@app.get("/ping", tags=["Health"])
async def ping():
    return {"ping": "pong! from Gallery Service"}

@app.get("/", tags=["Root"])
async def read_root():
    return {"message": "Welcome to the Gallery Service API"}

if __name__ == "__main__":
    import uvicorn
    logger.info(f"Starting Gallery Service on {settings.GALLERY_HOST}:{settings.GALLERY_PORT}")
    uvicorn.run("gallery_service.main:app", host=settings.GALLERY_HOST, port=settings.GALLERY_PORT, reload=True)
