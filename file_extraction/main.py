from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from file_extraction.config import get_cors_allow_origins
from file_extraction.logging_config import configure_logging
from file_extraction.routers import uploads_router

configure_logging()

app = FastAPI(
    title="File Extraction API",
    description="Upload → text detection → emailed download links",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_allow_origins(),
    allow_methods=["OPTIONS", "POST"],
    allow_headers=["Content-Type"],
)

app.include_router(uploads_router)


@app.get("/health")
async def health_check():
    return {"status": "ok", "service": "file-extraction-api"}
