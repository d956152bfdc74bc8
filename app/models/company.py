import json
from sqlalchemy import Column, Integer, String, Text, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base

class Company(Base):
    __tablename__ = "companies"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, index=True, nullable=False)
    settings = Column(Text, nullable=True)  # JSON string for settings
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    employees = relationship("Employee", back_populates="company")
    leave_policies = relationship("LeavePolicy", back_populates="company")

    @property
    def settings_dict(self) -> dict:
        if not self.settings:
            return {}
        try:
            return json.loads(self.settings)
        except ValueError:
            return {}
