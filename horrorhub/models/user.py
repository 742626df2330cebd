from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func

from horrorhub.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    username = Column(String(50), nullable=False)
    email = Column(String(255), unique=True, nullable=True)
    role = Column(String(20), nullable=False, default="user")  # user|admin
    api_key = Column(String(128), unique=True, nullable=True, index=True)

    created_at = Column(DateTime, server_default=func.now())

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def __repr__(self):
        return f"<User {self.username} [{self.role}]>"
