from sqlalchemy import Column, Float, String, Text

from app.database import Base


class Course(Base):
    __tablename__ = "courses"

    id = Column(String(20), primary_key=True)

    title = Column(String(255), nullable=False)
    description = Column(Text)
    instructor = Column(String(100))
    duration = Column(String(50))
    price = Column(Float, nullable=False, default=0.0)
