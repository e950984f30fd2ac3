"""Surplus Miner: read-only results API for the dashboard."""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings, get_cors_origins
from .routers import pipeline

app = FastAPI(
    title="Surplus Miner API",
    description="Counterfactual Bitcoin mining on unused nuclear capacity",
    version="1.0.0",
)

# CORS for the dashboard frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_origins() or Settings().cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(pipeline.router)


@app.get("/api/health")
def health_check():
    return {"status": "ok", "service": "surplus-miner-api", "version": "1.0.0"}
