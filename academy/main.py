import logging

from fastapi import FastAPI

from academy.core.config import settings
from academy.core.errors import add_error_handlers
from academy.core.logging_middleware import LoggingMiddleware
from academy.db.init_db import init_db
from academy.routers.gradebook import router as gradebook_router
from academy.routers.grades import router as grades_router
from academy.routers.reminders import router as reminders_router

logging.basicConfig(level=settings.LOG_LEVEL)

app = FastAPI(title="Academy Grading & Reminders")

# Middleware
app.add_middleware(LoggingMiddleware)

# JSON error envelopes instead of stack traces
add_error_handlers(app)


# Health check
@app.get("/health")
def health():
    return {"status": "ok"}


# Startup event
@app.on_event("startup")
def on_startup():
    init_db()


# Include routers
app.include_router(grades_router, tags=["gpa"])
app.include_router(gradebook_router, prefix="/gradebook", tags=["gradebook"])
app.include_router(reminders_router, prefix="/reminders", tags=["reminders"])
