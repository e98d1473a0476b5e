"""
Complaint Engine - FastAPI Application

Complaint lifecycle backend:
- Escalation: OPEN complaints older than 24h → ESCALATED (scheduler, SYSTEM)
- Resolution: ESCALATED → RESOLVED / DISMISSED (admin, USER)
"""
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .routers import complaints_router, scheduler_router
from .database import init_db

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database on startup."""
    init_db()
    yield

# Create FastAPI app
app = FastAPI(
    lifespan=lifespan,
    title="Complaint Engine",
    description="""
    Complaint Engine - Complaint Lifecycle Backend

    ## Lifecycle
    1. **Open**: submitted by a client against a cook's order
    2. **Escalated**: no cook response within 24 hours
    3. **Resolved / Dismissed**: admin decision (refund, warning, suspension or dismissal)

    ## Key Principles
    - States never move backward; resolved and dismissed are terminal
    - Every transition appends an immutable activity log record
    - Escalation is idempotent and safe to re-run
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(complaints_router)
app.include_router(scheduler_router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": "1.0.0"}


# For running with: python -m complaint_engine.main
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)
