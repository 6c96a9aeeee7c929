from sqlalchemy import Boolean, Column, Integer, String, Text

from app.database import Base


class ReplyTemplate(Base):
    __tablename__ = "intent_templates"

    id = Column(Integer, primary_key=True, autoincrement=True)
    intent_name = Column(String(64), nullable=False, index=True)
    sub_intent = Column(String(64))
    display_label = Column(Text)
    message = Column(Text, nullable=False)
    sort_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
