from contextlib import asynccontextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from budgetflow.core.exceptions import BudgetFlowError, InfrastructureError
from budgetflow.utils.logger import app_logger


@asynccontextmanager
async def unit_of_work(db: AsyncSession, operation: str):
    """
    Commit on success, roll back on any failure.

    Domain errors are re-raised untouched; SQLAlchemy errors surface as
    InfrastructureError so the routes never see driver exceptions.
    """
    try:
        yield db
        await db.commit()
    except BudgetFlowError as e:
        app_logger.warning(f"{operation} rejected: {e.message}")
        await db.rollback()
        raise
    except SQLAlchemyError as e:
        app_logger.error(f"{operation} database error: {e}", exc_info=True)
        await db.rollback()
        raise InfrastructureError(f"Database error during {operation}") from e
