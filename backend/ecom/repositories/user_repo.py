from typing import Optional

from sqlalchemy.orm import Session

from ecom.models.user import User


class UserRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email).first()

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self.db.get(User, user_id)

    def create(self, first_name: str, last_name: str, email: str, password_hash: str) -> User:
        u = User(
            first_name=first_name,
            last_name=last_name,
            email=email,
            password=password_hash,
        )
        self.db.add(u)
        self.db.flush()
        return u
