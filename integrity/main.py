from fastapi import FastAPI

from integrity.config import settings
from integrity.engine.router import router as integrity_router
from integrity.logging_config import setup_logging

setup_logging(json_mode=settings.log_json, level=settings.log_level)

app = FastAPI(title="Integrity", version="0.1.0")
app.include_router(integrity_router)


@app.get("/")
async def root() -> dict:
    return {
        "status": "ok",
        "docs": "/docs",
        "health": "/health",
        "integrity": {
            "goals": "/integrity/goals",
            "goals_active": "/integrity/goals/active",
            "progress": "/integrity/progress/{date}",
            "progress_write": "/integrity/progress/{date}/{goal}",
            "score": "/integrity/score",
            "history": "/integrity/history",
            "rank": "/integrity/rank",
            "stats": "/integrity/stats",
            "experience_sync": "/integrity/experience/sync",
        },
    }


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
