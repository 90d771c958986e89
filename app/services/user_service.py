from sqlalchemy.orm import Session
from typing import Optional
import logging

from app.middleware.transaction_handler import transactional
from app.models.user import User
from app.core.security import get_password_hash, verify_password
from app.schemas.user import UserUpdateRequest
from app.utils.exceptions import ConflictError

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, db: Session):
        self.db = db

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email).first()

    @transactional
    def create_user(self, email: str, name: str, password: str) -> User:
        if self.get_user_by_email(email):
            logger.warning(f"User creation failed: email {email} already exists")
            raise ConflictError("Email already registered")

        user = User(
            email=email,
            name=name,
            password_hash=get_password_hash(password),
        )
        self.db.add(user)
        self.db.flush()

        logger.info(f"User created: {user.id} - {user.email}")
        return user

    def authenticate(self, email: str, password: str) -> Optional[User]:
        user = self.get_user_by_email(email)
        if not user or not verify_password(password, user.password_hash):
            logger.warning(f"Failed login attempt for {email}")
            return None
        return user

    @transactional
    def update_user(self, user: User, update_data: UserUpdateRequest) -> User:
        if update_data.name is not None:
            user.name = update_data.name

        logger.info(f"User updated: {user.id}")
        return user

    @transactional
    def delete_user(self, user: User) -> None:
        """Lists and purchase lists go with the user"""
        self.db.delete(user)
        logger.info(f"User deleted: {user.id}")
