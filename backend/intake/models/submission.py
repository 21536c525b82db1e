from sqlalchemy import Column, Integer, Text
from sqlalchemy.orm import relationship
from intake.database import Base


class Submission(Base):
    __tablename__ = "uploads"

    id = Column(Integer, primary_key=True, autoincrement=True)
    upload_type = Column(Text)
    contractor_name = Column(Text)
    project_name = Column(Text)
    notes = Column(Text)
    certifier_name = Column(Text)
    certifier_designation = Column(Text)
    certified_date = Column(Text)
    created_at = Column(Text, nullable=False)

    attachments = relationship("Attachment", back_populates="submission", passive_deletes=True)
