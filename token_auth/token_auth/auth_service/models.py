from sqlalchemy import Column, String, DateTime
from datetime import datetime
from .db import Base
import uuid


class User(Base):
    __tablename__ = "users"
    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    username = Column(String, nullable=False)
    # Upper-cased copy used for case-insensitive lookups
    normalized_username = Column(String, unique=True, index=True, nullable=False)
    email = Column(String, nullable=True)
    normalized_email = Column(String, index=True, nullable=True)
    password_hash = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
