from contextlib import asynccontextmanager

from fastapi import FastAPI

from .database import init_db
from .logger import setup_logging
from .routers import recurring, reports, rules
from .schemas import HealthResponse
from .security import RequireAPIAuth

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(_app: FastAPI):
    setup_logging()
    init_db()
    yield


app = FastAPI(
    title="Finsight",
    description="Cash-flow aggregation, budget proration, rule-based categorization and forecasting.",
    version=VERSION,
    lifespan=lifespan,
)

app.include_router(reports.router, dependencies=[RequireAPIAuth])
app.include_router(recurring.router, dependencies=[RequireAPIAuth])
app.include_router(rules.router, dependencies=[RequireAPIAuth])


@app.get("/health", response_model=HealthResponse, tags=["meta"])
def health():
    return {"status": "ok", "version": VERSION}
