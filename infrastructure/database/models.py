from sqlalchemy import Column, Integer, String, Boolean, Text, DateTime, JSON, Index
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class AlarmRecord(Base):
    __tablename__ = "alarms"

    id = Column(String, primary_key=True)
    owner_id = Column(String, nullable=False, index=True)
    fire_at = Column(DateTime, nullable=False)
    message = Column(Text, nullable=False, default="")
    status = Column(String, nullable=False, default="Active")  # старые записи: "0", "1", "Ativo"...
    is_recurring = Column(Boolean, nullable=False, default=False)
    recurrence_kind = Column(String, nullable=True)
    week_days = Column(JSON, nullable=False, default=list)
    month_days = Column(JSON, nullable=False, default=list)

    # Заполнены только пока будильник отложен
    original_message = Column(Text, nullable=True)
    schedule_anchor = Column(DateTime, nullable=True)

    # Счётчик для compare-and-swap обновлений
    version = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        Index("idx_alarms_owner_status_fire_at", "owner_id", "status", "fire_at"),
    )

    def __repr__(self):
        return (f"<AlarmRecord id={self.id}, owner_id={self.owner_id}, "
                f"fire_at={self.fire_at}, status={self.status}>")
