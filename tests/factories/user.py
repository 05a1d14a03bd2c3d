"""User factory for tests."""

from datetime import UTC, datetime
from uuid import uuid4

from polyfactory.factories.sqlalchemy_factory import SQLAlchemyFactory

from tenantforge.modules.users.models import PaymentStatus, User


class UserFactory(SQLAlchemyFactory[User]):
    """Factory for active, paid-up users."""

    __model__ = User
    __set_relationships__ = False

    @classmethod
    def email(cls) -> str:
        """Generate a unique email."""
        return f"user-{uuid4().hex[:8]}@example.com"

    @classmethod
    def full_name(cls) -> str:
        return f"Test User {uuid4().hex[:4]}"

    @classmethod
    def password_hash(cls) -> str:
        # This is a bcrypt hash of "testpassword123"
        return "$2b$12$LQv3c1yqBWVHxkd0LHAkCOYz6TtxMQJqhN8/X4.xzQvGxRGlKHOHO"

    @classmethod
    def is_active(cls) -> bool:
        return True

    @classmethod
    def is_admin(cls) -> bool:
        return False

    @classmethod
    def plan_id(cls) -> None:
        return None

    @classmethod
    def payment_status(cls) -> str:
        return PaymentStatus.CURRENT

    @classmethod
    def payment_failed_at(cls) -> None:
        return None

    @classmethod
    def subscription_ends_at(cls) -> None:
        return None

    @classmethod
    def subscription_cancelled_at(cls) -> None:
        return None

    @classmethod
    def created_at(cls) -> datetime:
        return datetime.now(UTC)

    @classmethod
    def updated_at(cls) -> datetime:
        return datetime.now(UTC)


def bearer(user: User) -> dict[str, str]:
    """Authorization header with a valid access token for ``user``."""
    from tenantforge.core.auth.backend import create_access_token

    token = create_access_token(user_id=user.id, is_admin=user.is_admin)
    return {"Authorization": f"Bearer {token}"}
