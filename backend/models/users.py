# backend/models/users.py
from sqlalchemy import Column, Integer, String
from database import Base

ADMIN_ROLE = "admin"

# Represents a user account; customers own carts and orders, admins receive new-order notices
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False, default="")
    role = Column(String, nullable=False, default="customer")
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)

    @property
    def display_name(self) -> str:
        full_name = " ".join(p for p in (self.first_name, self.last_name) if p)
        return full_name or self.email

    @property
    def is_admin(self) -> bool:
        return (self.role or "").lower() == ADMIN_ROLE
