from sqlalchemy import Column, Float, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship
from intake.database import Base


class Attachment(Base):
    __tablename__ = "supporting_files"

    id = Column(Integer, primary_key=True, autoincrement=True)
    upload_id = Column(Integer, ForeignKey("uploads.id"), nullable=False)
    doc_type = Column(Text, nullable=False)
    doc_title = Column(Text)
    label = Column(Text)
    filename = Column(Text, nullable=False)
    storage_path = Column(Text, nullable=False, unique=True)
    station = Column(Text)
    caption = Column(Text)
    latitude = Column(Float)
    longitude = Column(Float)
    file_size_bytes = Column(Integer)
    mime_type = Column(Text)
    file_hash = Column(Text)
    created_at = Column(Text, nullable=False)

    submission = relationship("Submission", back_populates="attachments")
