"""
Appeal and appeal response models
"""
from sqlalchemy import Column, DateTime, ForeignKey, Integer, Text, Enum as SQLEnum, func
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
import enum
from app.core.database import Base


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the TIMESTAMP columns"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class AppealStatus(str, enum.Enum):
    NEW = "New"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class Appeal(Base):
    __tablename__ = "appeals"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    topic = Column(Text, nullable=False)
    message = Column(Text, nullable=False)
    # Stored as the enum values ("New", "InProgress", ...) in a plain text column
    status = Column(
        SQLEnum(
            AppealStatus,
            name="appealstatus",
            native_enum=False,
            create_constraint=False,
            length=32,
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        nullable=False,
        default=AppealStatus.NEW,
        index=True,
    )
    init_date = Column(DateTime, nullable=False, default=utcnow, server_default=func.now(), index=True)
    update_date = Column(DateTime, nullable=False, default=utcnow, server_default=func.now())
    
    # Relationships
    responses = relationship(
        "AppealResponse",
        back_populates="appeal",
        order_by="AppealResponse.id",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )
    
    @property
    def response_message(self):
        """Latest resolution or cancellation text, if any"""
        if not self.responses:
            return None
        return self.responses[-1].response_message
    

class AppealResponse(Base):
    __tablename__ = "appeal_responses"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    appeal_id = Column(Integer, ForeignKey("appeals.id", ondelete="CASCADE"), nullable=False, index=True)
    response_message = Column(Text, nullable=False)
    date = Column(DateTime, nullable=False, default=utcnow, server_default=func.now())
    
    # Relationships
    appeal = relationship("Appeal", back_populates="responses")
