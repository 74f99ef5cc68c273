from typing import Any, Dict

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from dreamknot.data.models.user import UserModel
from dreamknot.domain.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from dreamknot.repos.report_repo import ReportRepo
from dreamknot.repos.user_repo import UserRepo
from dreamknot.domain.schemas import UserCreate, UserRead
from dreamknot.utils.logging import get_logger

logger = get_logger(__name__)

STAFF_ROLES = ("admin", "staff")
ROLES = ("customer", "staff", "admin")


class UserService:
    def __init__(self, db: Session):
        self.repo = UserRepo(db)
        self.reports = ReportRepo(db)

    def create_user(self, payload: UserCreate) -> UserRead:
        existing = self.repo.get_user(payload.id)
        if existing:
            return UserRead.model_validate(existing)

        user = UserModel(id=payload.id, name=payload.name, email=payload.email, role=payload.role)
        try:
            created = self.repo.create_user(user)
        except IntegrityError:
            self.repo.db.rollback()
            raise ConflictError("Email already registered")
        return UserRead.model_validate(created)

    def get_user(self, user_id: int) -> UserRead:
        user = self.repo.get_user(user_id)
        if not user:
            raise NotFoundError("User")
        return UserRead.model_validate(user)

    def require_staff(self, user_id: int) -> UserRead:
        user = self.get_user(user_id)
        if user.role not in STAFF_ROLES:
            raise ForbiddenError("Admin or staff role required")
        return user

    def require_admin(self, user_id: int) -> UserRead:
        user = self.get_user(user_id)
        if user.role != "admin":
            raise ForbiddenError("Only admins can modify user roles")
        return user

    # profile
    def get_profile(self, user_id: int) -> Dict[str, Any]:
        user = self.repo.get_user(user_id)
        if not user:
            raise NotFoundError("User")

        orders = self.reports.order_totals([user_id])
        return {
            "id": user.id,
            "name": user.name,
            "email": user.email,
            "phone": user.phone,
            "role": user.role,
            "created_at": user.created_at,
            "order_count": orders[user_id][0] if user_id in orders else 0,
            "review_count": self.reports.review_counts([user_id]).get(user_id, 0),
            "address_count": self.reports.address_counts([user_id]).get(user_id, 0),
        }

    def update_profile(self, user_id: int, changes: Dict[str, Any]) -> Dict[str, Any]:
        user = self.repo.get_user(user_id)
        if not user:
            raise NotFoundError("User")
        if "name" in changes and changes["name"] is None:
            raise ValidationError("Name cannot be null", field="name")

        for field in ("name", "phone"):
            if field in changes:
                setattr(user, field, changes[field])
        self.repo.save(user)
        logger.info(f"Profile of user {user_id} updated: {sorted(changes)}")
        return self.get_profile(user_id)

    def set_role(self, user_id: int, role: str) -> UserRead:
        if role not in ROLES:
            raise ValidationError("Invalid role", field="role")
        user = self.repo.get_user(user_id)
        if not user:
            raise NotFoundError("User")

        user.role = role
        self.repo.save(user)
        logger.info(f"User {user_id} role -> {role}")
        return UserRead.model_validate(user)
