from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text
from datetime import datetime
import json

from horrorhub.database import Base


class Config(Base):
    __tablename__ = "config"

    id = Column(Integer, primary_key=True)
    key = Column(String(100), unique=True, nullable=False)
    value = Column(Text)
    module = Column(String(50), default="core")  # "watchmode", "tvdb", "sync", "core"
    secret = Column(Boolean, default=False)  # masked in admin responses
    data_type = Column(String(20), default="string")  # string, int, float, bool, json
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    description = Column(String(500), nullable=True)

    def __repr__(self):
        return f"<Config {self.key}={(self.value or '')[:20]}...>"

    @property
    def typed_value(self):
        """Returns value converted to its declared data_type"""
        if self.value is None:
            return None
        if self.data_type in ("bool", "boolean"):
            return self.value.lower() in ("true", "1", "yes")
        elif self.data_type in ("int", "integer"):
            return int(self.value)
        elif self.data_type == "float":
            return float(self.value)
        elif self.data_type == "json":
            return json.loads(self.value)
        return self.value
