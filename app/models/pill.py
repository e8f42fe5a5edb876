from sqlalchemy import Column, String

from app.database import Base


class Pill(Base):
    __tablename__ = "pills"

    id = Column(String, primary_key=True)
    generic_name = Column(String, nullable=False)
    drug_class = Column(String, nullable=True)
    colour = Column(String, nullable=True)
    size = Column(String, nullable=True)
    shape = Column(String, nullable=True)
    dosage = Column(String, nullable=True)
    uses = Column(String, nullable=True)
    description = Column(String, nullable=True)
    warnings = Column(String, nullable=True)
    image_path = Column(String, nullable=True)
    created_at = Column(String, nullable=False)
