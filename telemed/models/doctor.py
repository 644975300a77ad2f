from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Table, Text
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from ..core.database import Base

doctor_categories = Table(
    "doctor_categories",
    Base.metadata,
    Column("doctor_id", Integer, ForeignKey("doctors.id", ondelete="CASCADE"), primary_key=True),
    Column("category_id", Integer, ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True),
)

class Category(Base):
    __tablename__ = "categories"
    
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    
    doctors = relationship("Doctor", secondary=doctor_categories, back_populates="categories")
    
    def __repr__(self):
        return f"<Category(id={self.id}, name='{self.name}')>"

class Doctor(Base):
    __tablename__ = "doctors"
    
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    
    # Personal information
    full_name = Column(String(200), nullable=False)
    phone = Column(String(20), nullable=False)
    profile_image = Column(String(500), nullable=True)
    
    # Professional information
    degree = Column(String(100), nullable=False)
    experience = Column(Integer, nullable=False)  # years
    description = Column(Text, nullable=False)
    
    # Timestamps
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
    
    # Relationships
    user = relationship("User", back_populates="doctor")
    categories = relationship("Category", secondary=doctor_categories, back_populates="doctors")
    consultations = relationship("Consultation", back_populates="doctor")
    
    def __repr__(self):
        return f"<Doctor(id={self.id}, name='{self.full_name}', degree='{self.degree}')>"
