from sqlalchemy import delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from budgetflow.config import HASH_ITERATIONS
from budgetflow.core.exceptions import AuthError, NotFoundError, ValidationError, InvalidStateError
from budgetflow.core.lifecycle import validate_rate
from budgetflow.core.password_hasher import Ssha2Hasher
from budgetflow.models.budget import Budget
from budgetflow.models.user import User, UserRole
from budgetflow.schemas.user import RegisterRequest
from budgetflow.services.transaction import unit_of_work
from budgetflow.utils.logger import app_logger

# shared hasher instance
_password_hasher = Ssha2Hasher(iterations=HASH_ITERATIONS)


class UserService:
    @staticmethod
    def to_dict(user: User) -> dict:
        return {
            "id": user.id,
            "email": user.email,
            "first_name": user.first_name,
            "last_name": user.last_name,
            "department": user.department,
            "position": user.position,
            "hourly_rate": user.hourly_rate,
            "roles": user.role_list,
            "is_active": user.is_active,
            "created_at": user.created_at,
        }

    @staticmethod
    async def get_user(db: AsyncSession, user_id: str) -> User:
        user = await db.get(User, user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str):
        result = await db.execute(select(User).where(User.email == email.strip().lower()))
        return result.scalar_one_or_none()

    @staticmethod
    async def register(db: AsyncSession, data: RegisterRequest, roles=(UserRole.EMPLOYEE,)) -> User:
        app_logger.info(f"Registering user {data.email}")
        async with unit_of_work(db, "register user"):
            if "@" not in data.email:
                raise ValidationError("A valid email address is required", email=data.email)
            if await UserService.get_by_email(db, data.email) is not None:
                raise ValidationError(f"Email {data.email} is already registered", email=data.email)
            hourly_rate = validate_rate(data.hourly_rate)

            user = User(
                email=data.email.strip().lower(),
                password_hash=_password_hasher.hash(data.password),
                first_name=data.first_name,
                last_name=data.last_name,
                department=data.department,
                position=data.position,
                hourly_rate=hourly_rate,
                roles=",".join(UserRole(r).value for r in roles),
            )
            db.add(user)
            await db.flush()

        app_logger.info(f"User {user.email} registered with id {user.id}")
        return user

    @staticmethod
    async def verify_credentials(db: AsyncSession, email: str, password: str) -> User:
        user = await UserService.get_by_email(db, email)
        if user is None:
            app_logger.warning(f"user not found: {email}")
            raise AuthError("Invalid email or password")
        if not _password_hasher.verify(user.password_hash, password):
            app_logger.warning(f"wrong password for: {email}")
            raise AuthError("Invalid email or password")
        if not user.is_active:
            app_logger.warning(f"inactive user tried to sign in: {email}")
            raise AuthError("Account is disabled")
        return user

    @staticmethod
    async def delete_user(db: AsyncSession, user_id: str):
        """
        Remove a user.

        Blocked while the user still owns budgets. Otherwise the store
        cascades their timesheet entries and audit rows and nulls their
        reviewer references on approvals.
        """
        app_logger.info(f"Deleting user {user_id}")
        async with unit_of_work(db, "delete user"):
            await UserService.get_user(db, user_id)

            owned = await db.scalar(
                select(func.count()).select_from(Budget).where(Budget.created_by_id == user_id)
            )
            if owned:
                raise InvalidStateError(
                    f"User owns {owned} budget(s); reassign or delete them first",
                    owned_budgets=owned)

            await db.execute(delete(User).where(User.id == user_id))

        db.expunge_all()
        app_logger.info(f"User {user_id} deleted")

    @staticmethod
    async def ensure_admin(db: AsyncSession, email: str, password: str):
        """Create the configured administrator account once"""
        if await UserService.get_by_email(db, email) is not None:
            return None
        app_logger.info(f"Seeding administrator account {email}")
        return await UserService.register(
            db,
            RegisterRequest(email=email, password=password, first_name="System", last_name="Administrator"),
            roles=(UserRole.ADMIN, UserRole.MANAGER, UserRole.FINANCE, UserRole.EXECUTIVE),
        )
