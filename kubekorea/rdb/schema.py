from sqlalchemy import Column, DateTime, String, Text, func

from kubekorea.rdb.client import Base


class StorageItem(Base):
    """브라우저 localStorage와 같은 key -> JSON 문자열 저장소"""
    __tablename__ = "storage_item"

    key = Column(String, primary_key=True, index=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
