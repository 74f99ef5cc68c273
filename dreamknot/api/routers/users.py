from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from dreamknot.data.database import get_db
from dreamknot.services.user_service import UserService
from dreamknot.domain.schemas import ProfileOut, ProfileUpdate, UserCreate, UserRead

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/", response_model=UserRead)
def create_user(payload: UserCreate, db: Session = Depends(get_db)):
    return UserService(db).create_user(payload)


@router.get("/{user_id}", response_model=UserRead)
def get_user(user_id: int, db: Session = Depends(get_db)):
    return UserService(db).get_user(user_id)


@router.get("/{user_id}/profile", response_model=ProfileOut)
def get_profile(user_id: int, db: Session = Depends(get_db)):
    return UserService(db).get_profile(user_id)


@router.put("/{user_id}/profile", response_model=ProfileOut)
def update_profile(user_id: int, payload: ProfileUpdate, db: Session = Depends(get_db)):
    return UserService(db).update_profile(user_id, payload.model_dump(exclude_unset=True))
