"""
Destinations assigned to agents and the arrivals that complete them.
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Float, ForeignKey, Index
from sqlalchemy.orm import relationship

from .base import BaseModel


class Destination(BaseModel):
    __tablename__ = 'destinations'

    agent_id = Column(String(32), ForeignKey('agents.uuid'), nullable=False, index=True)
    name = Column(String(500), nullable=False)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    priority = Column(Integer, nullable=False)
    date = Column(DateTime, nullable=False)  # naive UTC
    reached = Column(Boolean, default=False, nullable=False)
    reached_at = Column(DateTime, nullable=True)

    agent = relationship("Agent", back_populates="destinations")
    arrivals = relationship("DestinationArrival", back_populates="destination", cascade="all, delete-orphan")

    __table_args__ = (
        Index('idx_destination_agent_priority', 'agent_id', 'priority'),
    )

    def __repr__(self):
        return (f"<Destination(uuid='{self.uuid}', name='{self.name}', "
                f"priority={self.priority}, reached={self.reached})>")


class DestinationArrival(BaseModel):
    __tablename__ = 'destination_arrivals'

    agent_id = Column(String(32), ForeignKey('agents.uuid'), nullable=False, index=True)
    destination_id = Column(Integer, ForeignKey('destinations.id'), nullable=False, index=True)
    timestamp = Column(DateTime, nullable=False)  # naive UTC

    destination = relationship("Destination", back_populates="arrivals")
