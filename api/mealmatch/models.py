import uuid
from sqlalchemy import JSON, Boolean, Column, DateTime, Float, Index, Integer, String, Text, func, text
from .database import Base


def _uuid_str() -> str:
    return str(uuid.uuid4())


class UserProfile(Base):
    __tablename__ = "user_profile"

    user_id = Column(String, primary_key=True)
    email = Column(String, nullable=True)
    display_name = Column(String, nullable=True)
    survey_completed = Column(Boolean, nullable=False, default=False)
    preference_fields = Column(JSON, nullable=False, default=dict)
    favorite_locations = Column(JSON, nullable=False, default=list)
    contact_detail = Column(String, nullable=True)
    friends = Column(JSON, nullable=False, default=list)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class UserAvailability(Base):
    __tablename__ = "user_availability"

    user_id = Column(String, primary_key=True)
    week_key = Column(String, primary_key=True)
    is_recurring = Column(Boolean, nullable=False, default=False)
    slots_by_day = Column(JSON, nullable=False, default=dict)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class CompatibilityScore(Base):
    __tablename__ = "compatibility_score"

    pair_key = Column(String, primary_key=True)
    lo_user_id = Column(String, nullable=False)
    hi_user_id = Column(String, nullable=False)
    score = Column(Float, nullable=False)
    last_updated = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        Index("idx_compatibility_score_lo", "lo_user_id"),
        Index("idx_compatibility_score_hi", "hi_user_id"),
    )


class MealProposal(Base):
    __tablename__ = "meal_proposal"

    id = Column(String, primary_key=True, default=_uuid_str)
    initiator_id = Column(String, nullable=False)
    candidate_id = Column(String, nullable=False)
    proposed_day = Column(String, nullable=False)
    proposed_slot = Column(String, nullable=False)
    proposed_location = Column(String, nullable=False)
    status = Column(String, nullable=False, default="pending")
    compatibility_snapshot = Column(Float, nullable=False)
    acceptances = Column(JSON, nullable=False, default=dict)
    version = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        Index("idx_meal_proposal_initiator_status", "initiator_id", "status"),
        Index("idx_meal_proposal_candidate", "candidate_id"),
        Index(
            "uq_meal_proposal_pending_pair",
            "initiator_id",
            "candidate_id",
            unique=True,
            sqlite_where=text("status = 'pending'"),
            postgresql_where=text("status = 'pending'"),
        ),
    )


class ProposalEvent(Base):
    __tablename__ = "proposal_event"

    id = Column(String, primary_key=True, default=_uuid_str)
    proposal_id = Column(String, nullable=False, index=True)
    user_id = Column(String, nullable=True)
    event_type = Column(String, nullable=False)
    payload = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Notification(Base):
    __tablename__ = "notification"

    id = Column(String, primary_key=True, default=_uuid_str)
    user_id = Column(String, nullable=False)
    type = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    related_user_id = Column(String, nullable=True)
    related_proposal_id = Column(String, nullable=True)
    read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (Index("idx_notification_user_created", "user_id", "created_at"),)


class MealLocation(Base):
    __tablename__ = "meal_location"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False, unique=True)


class MealEvent(Base):
    __tablename__ = "meal_event"

    id = Column(String, primary_key=True, default=_uuid_str)
    name = Column(String, nullable=False)
    location = Column(String, nullable=True)
    starts_at = Column(DateTime(timezone=True), nullable=False)
    ends_at = Column(DateTime(timezone=True), nullable=False)
    capacity = Column(Integer, nullable=False)
    participants = Column(JSON, nullable=False, default=list)
    creator_id = Column(String, nullable=False)
    version = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (Index("idx_meal_event_starts_at", "starts_at"),)
