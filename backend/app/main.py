"""
EHS Enforcement Engine - FastAPI Application

Main entry point for the enforcement dashboard backend.

Architecture:
- Cases + Notices → ActivityAggregator → merged Recent Activity feed
- Notice dates → ComplianceClassifier → compliance status (never stored)
- Cases + Notices → MetricsRefreshEngine → MetricsStore (one snapshot per period)
- MetricsRefreshEngine → ChangeNotifier ("metrics:refreshed")
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .routers import dashboard_router, notices_router, admin_router, scheduler_router
from .database import init_db

logging.basicConfig(
    level=logging.INFO,
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
    title="EHS Enforcement Engine",
    description="""
    EHS Enforcement Engine - Enforcement Activity Cache & Compliance

    Tracks regulator enforcement cases (fined) and notices (compliance deadlines)
    and serves the dashboard read path.

    ## Components
    1. **Metrics cache**: one snapshot per period (week, month, year), swapped atomically on refresh
    2. **Recent activity**: cases and notices merged into one chronological feed
    3. **Compliance**: notice status derived from dates on every read

    ## Key Principles
    - Snapshots are built in memory before the live row is replaced
    - One failing period never blocks the others
    - Compliance status is never persisted
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
app.include_router(dashboard_router)
app.include_router(notices_router)
app.include_router(admin_router)
app.include_router(scheduler_router)


@app.get("/")
async def root():
    """Root endpoint - API information."""
    return {
        "name": "EHS Enforcement Engine",
        "version": "1.0.0",
        "description": "Enforcement Activity Cache & Compliance Engine",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": "1.0.0"}


# For running with: python -m app.main
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)
