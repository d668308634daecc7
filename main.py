from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from budgetflow.config import APP_NAME, APP_VERSION, CORS_ALLOW_ORIGINS, settings
from budgetflow.database import SessionLocal, engine, init_db
from budgetflow.routes import approvals, auth, budgets, dashboard, lookup, report, timesheets, users
from budgetflow.services.user_service import UserService
from budgetflow.utils.logger import app_logger


async def seed_admin():
    """Create the administrator from config when one is configured"""
    admin = settings.get('seed', {}).get('admin')
    if not admin:
        return
    async with SessionLocal() as session:
        await UserService.ensure_admin(session, admin['email'], admin['password'])


@asynccontextmanager
async def lifespan(app: FastAPI):
    app_logger.info(f"Starting {APP_NAME} {APP_VERSION}")
    await init_db()
    await seed_admin()

    yield

    app_logger.info("Disposing database engine")
    await engine.dispose()


app = FastAPI(title=APP_NAME, version=APP_VERSION, lifespan=lifespan)
# CORS origins come from config
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    app_logger.warning(f"Invalid request to {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=jsonable_encoder({
            "detail": {"code": "validation_error", "message": "Invalid request", "details": exc.errors()}
        }),
    )


app.include_router(auth.router, prefix="/auth")
app.include_router(users.router, prefix="/users")
app.include_router(budgets.router, prefix="/budgets")
app.include_router(approvals.router, prefix="/approvals")
app.include_router(timesheets.router, prefix="/timesheets")
app.include_router(dashboard.router, prefix="/dashboard")
app.include_router(report.router, prefix="/report")
app.include_router(lookup.router, prefix="/lookup")


@app.get("/health")
async def health_check():
    """Liveness plus a round trip to the database"""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return {
            "status": "healthy",
            "database": "connected",
            "timestamp": datetime.now().isoformat()
        }
    except SQLAlchemyError as e:
        app_logger.error(f"Health check failed: {e}")
        return {
            "status": "unhealthy",
            "error": str(e),
            "timestamp": datetime.now().isoformat()
        }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="127.0.0.1", port=8002, log_level="info")
