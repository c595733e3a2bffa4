"""
Location ping model for tracking agent movements and location history.
"""
from sqlalchemy import Column, String, DateTime, Float, ForeignKey, Index
from sqlalchemy.orm import relationship

from .base import BaseModel


class LocationPing(BaseModel):
    """
    One timestamped location reading reported by an agent's device.
    Rows are immutable once recorded.
    """
    __tablename__ = 'location_pings'

    agent_id = Column(String(32), ForeignKey('agents.uuid'), nullable=False, index=True)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    place_name = Column(String(255), nullable=True)  # Reverse geocoded on the device
    timestamp = Column(DateTime, nullable=False, index=True)  # naive UTC

    agent = relationship("Agent", back_populates="pings")

    # Indexes for performance
    __table_args__ = (
        Index('idx_ping_agent_time', 'agent_id', 'timestamp'),
    )

    def __repr__(self):
        return (f"<LocationPing(agent_id='{self.agent_id}', "
                f"lat={self.latitude}, lon={self.longitude}, "
                f"timestamp='{self.timestamp}')>")
