from sqlalchemy import Column, String, Text
from goal_tracker.database import Base


class StorageItem(Base):
    __tablename__ = "local_storage"

    key = Column(String(255), primary_key=True)
    value = Column(Text, nullable=False)
