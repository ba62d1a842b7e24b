import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pathlib import Path

from config.settings import settings
from config.database import init_db
from api.v1 import sessions, images, annotations, form, reference

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Initialize the in-process entity store
init_db()

app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_PREFIX}/openapi.json"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "X-Registered-Count", "X-Skipped-Count"],
)

# Create necessary directories
Path(settings.PROJECTS_DIR).mkdir(parents=True, exist_ok=True)
Path(settings.DATA_DIR).mkdir(parents=True, exist_ok=True)

# Include routers
app.include_router(
    sessions.router,
    prefix=f"{settings.API_PREFIX}/sessions",
    tags=["sessions"]
)
app.include_router(
    form.router,
    prefix=f"{settings.API_PREFIX}/sessions",
    tags=["form"]
)
app.include_router(
    images.router,
    prefix=f"{settings.API_PREFIX}/images",
    tags=["images"]
)
app.include_router(
    annotations.router,
    prefix=f"{settings.API_PREFIX}/annotations",
    tags=["annotations"]
)
app.include_router(
    reference.router,
    prefix=settings.API_PREFIX,
    tags=["reference"]
)


@app.get("/")
def root():
    return {
        "message": "Session Data Collector API",
        "docs": "/docs",
        "version": "1.0.0"
    }


@app.get("/health")
def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=False
    )
