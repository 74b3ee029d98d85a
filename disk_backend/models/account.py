from sqlalchemy import Column, DateTime, Integer, JSON, String

from disk_backend.database import Base


class AccountEntry(Base):
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True)
    username = Column(String(32), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(32), nullable=True)
    name = Column(String(100), nullable=True)
    avatar = Column(String(512), nullable=True)
    wechat = Column(String(100), nullable=True)
    banners = Column(JSON, nullable=True)
    role = Column(String(16), nullable=False, default="member")
    level = Column(Integer, nullable=False, default=1)
    balance = Column(Integer, nullable=False, default=0)
    code = Column(String(16), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
