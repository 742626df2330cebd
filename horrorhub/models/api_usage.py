from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func

from horrorhub.database import Base


class ApiUsage(Base):
    __tablename__ = "api_usage"

    id = Column(Integer, primary_key=True)
    month = Column(String(7), unique=True, nullable=False, index=True)  # "YYYY-MM"
    watchmode_requests = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<ApiUsage {self.month}: {self.watchmode_requests}>"
