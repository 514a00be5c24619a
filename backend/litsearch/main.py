"""
FastAPI Application Entry Point

Adaptive Literature Search API
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from litsearch.core.config import settings
from litsearch.core.rate_limit import STORAGE_URI, limiter, rate_limit_exceeded_handler
from litsearch.api.searches import router as searches_router

VERSION = "1.0.0"

app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Iterative multi-source literature retrieval with adaptive quality thresholds",
    version=VERSION,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

app.include_router(searches_router)

origins = [
    "http://localhost:3000",
    "http://localhost:4200",
    "*",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def health_check():
    """Root endpoint to verify the server is running."""
    return {
        "status": "active",
        "project": settings.PROJECT_NAME,
        "version": VERSION,
        "semantic_scoring": "embeddings" if settings.OPENAI_API_KEY else "neutral-fallback",
        "rate_limiting": {
            "enabled": True,
            "storage": "redis" if STORAGE_URI.startswith("redis") else "memory",
        },
        "endpoints": {
            "search": "/api/searches",
            "stream": "/api/searches/stream",
            "cancel": "/api/searches/{search_id}/cancel",
            "websocket": "/api/searches/ws",
        },
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
