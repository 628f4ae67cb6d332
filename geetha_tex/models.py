from sqlalchemy import Column, String, Text, DateTime, func
from geetha_tex.database import Base


class StoredValue(Base):
    __tablename__ = "kv_store"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)  # JSON document
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
