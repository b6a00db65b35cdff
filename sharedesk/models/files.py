from sqlalchemy import Column, Integer, BigInteger, String, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from . import Base

class FileRecord(Base):
    __tablename__ = 'files'
    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), index=True, nullable=False)
    filename = Column(String(255), nullable=False)
    file_key = Column(String(64), unique=True, index=True, nullable=False)
    size = Column(BigInteger, nullable=False, default=0)
    file_type = Column(String(255), nullable=False, default='application/octet-stream')
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    owner = relationship('User', lazy='joined')
