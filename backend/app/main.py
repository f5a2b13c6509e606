"""
UV dashboard FastAPI application entry point.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.router import router
from app.config import APP_VERSION

app = FastAPI(
    title="UV Dashboard API",
    description="UV index forecast smoothing and protection-time calculations",
    version=APP_VERSION,
)

# CORS: allow local frontend dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",  # Vite default
        "http://localhost:3000",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


@app.get("/api/health")
async def health_check():
    return {"status": "ok", "service": "uv-dashboard"}


@app.get("/api/version")
async def version():
    return {"version": APP_VERSION}
