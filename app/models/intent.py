from sqlalchemy import Boolean, Column, Integer, String, Text

from app.database import Base


class IntentDefinition(Base):
    __tablename__ = "intents"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(64), nullable=False, unique=True)
    description = Column(Text)
    is_action = Column(Boolean, nullable=False, default=False)  # needs staff to act, deferred at night
    is_complaint_like = Column(Boolean, nullable=False, default=False)
