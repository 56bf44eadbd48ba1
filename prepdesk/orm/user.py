"""
prepdesk/orm/user.py
Student account referenced by every per-user record.

Credentials live with the identity provider; this table only mirrors
the fields the study API needs.
"""
from sqlalchemy import Column, String, Boolean
from prepdesk.orm.base import BaseModel


class User(BaseModel):
    __tablename__ = "users"
    
    email = Column(String(255), nullable=False, unique=True, index=True)
    full_name = Column(String(200), nullable=False)
    
    # Per-user gate for the AI plan endpoint
    ai_enabled = Column(Boolean, default=False, nullable=False)
    
    exam_track = Column(String(50), nullable=True, comment="e.g. 'sayisal', 'esit-agirlik'")
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    
    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}')>"
