from sqlalchemy import (
    Column, Integer, String, Text, Numeric,
    ForeignKey, Enum, DateTime, Index, UniqueConstraint, CheckConstraint, func
)
from sqlalchemy.orm import relationship
import enum
import uuid

from . import db


def new_id():
    return str(uuid.uuid4())


# ---- ENUM TYPES ----
class SkillCategory(enum.Enum):
    technology = "technology"
    design = "design"
    business = "business"
    language = "language"
    music = "music"
    sports = "sports"
    cooking = "cooking"
    crafts = "crafts"
    academic = "academic"
    other = "other"


class SkillType(enum.Enum):
    offered = "offered"
    wanted = "wanted"


class RequestStatus(enum.Enum):
    pending = "pending"
    accepted = "accepted"
    declined = "declined"
    completed = "completed"
    cancelled = "cancelled"


# ---- TABLES ----
# user_id columns point at the auth service's users table, which lives
# outside this schema; profiles, links, requests and reviews join on it.
class Profile(db.Model):
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), unique=True, nullable=False)
    username = Column(Text, unique=True, nullable=False)
    full_name = Column(Text, nullable=False)
    bio = Column(Text)
    avatar_url = Column(Text)
    location = Column(Text)

    # maintained by the on_review_created trigger
    avg_rating = Column(Numeric(3, 2, asdecimal=False), default=0)
    total_reviews = Column(Integer, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())

    skills = relationship(
        "UserSkill",
        primaryjoin="Profile.user_id == foreign(UserSkill.user_id)",
        viewonly=True,
    )

    @property
    def initial(self):
        """First letter of the full name, for the avatar fallback."""
        if self.full_name and self.full_name.strip():
            return self.full_name.strip()[0].upper()
        return "?"

    @property
    def rating_label(self):
        if self.avg_rating and self.avg_rating > 0:
            return f"{float(self.avg_rating):.1f}"
        return "New"

    @property
    def reviews_label(self):
        count = self.total_reviews or 0
        return f"{count} review" if count == 1 else f"{count} reviews"


class Skill(db.Model):
    __tablename__ = "skills"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(Text, unique=True, nullable=False)
    category = Column(Enum(SkillCategory, name="skill_category"), nullable=False)
    description = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class UserSkill(db.Model):
    __tablename__ = "user_skills"
    __table_args__ = (
        UniqueConstraint("user_id", "skill_id", "skill_type"),
        CheckConstraint(
            "proficiency_level BETWEEN 1 AND 5", name="user_skills_proficiency_level_check"
        ),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False)
    skill_id = Column(
        String(36),
        ForeignKey("skills.id", ondelete="CASCADE"),
        nullable=False
    )
    skill_type = Column(
        Enum(SkillType, name="skill_type", native_enum=False, create_constraint=True),
        nullable=False
    )
    proficiency_level = Column(Integer)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    skill = relationship("Skill")


Index("idx_user_skills_user_id", UserSkill.user_id)


class SkillRequest(db.Model):
    __tablename__ = "skill_requests"

    id = Column(String(36), primary_key=True, default=new_id)
    requester_id = Column(String(36), nullable=False)
    provider_id = Column(String(36), nullable=False)
    requested_skill_id = Column(
        String(36),
        ForeignKey("skills.id", ondelete="CASCADE"),
        nullable=False
    )
    offered_skill_id = Column(
        String(36),
        ForeignKey("skills.id", ondelete="SET NULL"),
        nullable=True
    )
    message = Column(Text)
    status = Column(
        Enum(RequestStatus, name="request_status"),
        nullable=False,
        default=RequestStatus.pending
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    requested_skill = relationship("Skill", foreign_keys=[requested_skill_id])
    offered_skill = relationship("Skill", foreign_keys=[offered_skill_id])

    requester = relationship(
        "Profile",
        primaryjoin="foreign(SkillRequest.requester_id) == Profile.user_id",
        viewonly=True,
        uselist=False,
    )
    provider = relationship(
        "Profile",
        primaryjoin="foreign(SkillRequest.provider_id) == Profile.user_id",
        viewonly=True,
        uselist=False,
    )

    def involves(self, user_id):
        return user_id in (self.requester_id, self.provider_id)


class Review(db.Model):
    __tablename__ = "reviews"
    __table_args__ = (
        UniqueConstraint("reviewer_id", "reviewee_id", "skill_request_id"),
        CheckConstraint("rating BETWEEN 1 AND 5", name="reviews_rating_check"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    reviewer_id = Column(String(36), nullable=False)
    reviewee_id = Column(String(36), nullable=False)
    skill_request_id = Column(
        String(36),
        ForeignKey("skill_requests.id", ondelete="SET NULL"),
        nullable=True
    )
    rating = Column(Integer, nullable=False)
    comment = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    reviewer = relationship(
        "Profile",
        primaryjoin="foreign(Review.reviewer_id) == Profile.user_id",
        viewonly=True,
        uselist=False,
    )
