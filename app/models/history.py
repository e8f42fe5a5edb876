from sqlalchemy import Column, String, Float, JSON

from app.database import Base


class DetectionHistory(Base):
    __tablename__ = "detection_history"

    id = Column(String, primary_key=True)
    pill_name = Column(String, nullable=False)
    confidence = Column(Float, nullable=False)
    color = Column(String, nullable=True)
    shape = Column(String, nullable=True)
    imprint = Column(String, nullable=True)
    description = Column(String, nullable=True)
    usage = Column(String, nullable=True)
    warnings = Column(JSON, nullable=False)
    created_at = Column(String, nullable=False)
