"""
Authentication service (bcrypt hashes, JWT bearer tokens)
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
import bcrypt
from jose import jwt, JWTError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.core.config import settings
from app.core.exceptions import ConflictError, UnauthorizedError
from app.models.user import User
from app.models.user_storage import UserStorage
from app.schemas.auth import UserCreate

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes
BCRYPT_MAX_BYTES = 72


def _truncate_password_72(password: str) -> bytes:
    """Encode the password as UTF-8 and cut it to 72 bytes for bcrypt"""
    b = password.encode("utf-8")
    if len(b) <= BCRYPT_MAX_BYTES:
        return b
    return b[:BCRYPT_MAX_BYTES]


class AuthService:
    """Authentication service"""

    def __init__(self, db: AsyncSession):
        self.db = db

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        try:
            return bcrypt.checkpw(
                _truncate_password_72(plain_password),
                hashed_password.encode("utf-8"),
            )
        except ValueError:
            # malformed stored hash
            return False

    def get_password_hash(self, password: str) -> str:
        return bcrypt.hashpw(
            _truncate_password_72(password),
            bcrypt.gensalt(),
        ).decode("utf-8")

    def create_access_token(self, data: dict, expires_delta: Optional[timedelta] = None) -> str:
        """Create a signed access token"""
        to_encode = data.copy()
        expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=15))
        to_encode.update({"exp": expire})
        return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)

    async def authenticate_user(self, email: str, password: str) -> Optional[User]:
        user = await self.get_user_by_email(email)
        if not user or not user.password_hash:
            return None
        if not self.verify_password(password, user.password_hash):
            return None
        return user

    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    async def register_user(self, user_data: UserCreate) -> User:
        """Register a user and create their (empty) storage accumulator"""
        existing = await self.get_user_by_email(user_data.email)
        if existing:
            raise ConflictError("Email already in use")

        user = User(
            email=user_data.email.lower(),
            name=user_data.name,
            password_hash=self.get_password_hash(user_data.password),
        )
        self.db.add(user)
        await self.db.flush()
        self.db.add(UserStorage(user_id=user.id, used_storage=0))
        await self.db.commit()
        await self.db.refresh(user)
        logger.info("Registered user %s", user.id)
        return user

    async def get_current_user(self, token: str) -> User:
        """Resolve a bearer token to its user"""
        try:
            payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
        except JWTError:
            raise UnauthorizedError()
        user_id = payload.get("sub")
        if user_id is None:
            raise UnauthorizedError()

        result = await self.db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if user is None:
            raise UnauthorizedError()
        return user
