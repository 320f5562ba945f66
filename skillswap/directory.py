"""
Member directory: one page of profiles matching an optional name query and an
optional "offers skill X" filter, plus each member's first offered and first
wanted skill for the profile cards.
"""
from dataclasses import dataclass, field
from math import ceil
from typing import Dict, List, Optional
import logging

from sqlalchemy import or_
from sqlalchemy.orm import joinedload

from .models import Profile, Skill, SkillType, UserSkill

PAGE_SIZE = 10

logger = logging.getLogger(__name__)


@dataclass
class TopSkills:
    offered: Optional[Skill] = None
    wanted: Optional[Skill] = None


@dataclass
class ProfilePage:
    profiles: List[Profile]
    page: int
    total_pages: int
    top_skills: Dict[str, TopSkills] = field(default_factory=dict)

    @classmethod
    def empty(cls, page=1):
        return cls(profiles=[], page=page, total_pages=1)

    def top_for(self, profile):
        return self.top_skills.get(profile.user_id, TopSkills())


def total_pages_for(count):
    """ceil(count / PAGE_SIZE), never less than one page."""
    return max(1, ceil(count / PAGE_SIZE))


def contains_pattern(text):
    """LIKE pattern matching text literally anywhere; use with escape="\\"."""
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def name_matches(query):
    pattern = contains_pattern(query)
    return or_(
        Profile.username.ilike(pattern, escape="\\"),
        Profile.full_name.ilike(pattern, escape="\\"),
    )


def offering_user_ids(session, skill_name):
    """
    User ids that offer the named skill.
    An unknown skill name has no offerers.
    """
    skill = session.query(Skill).filter(Skill.name == skill_name).first()
    if skill is None:
        return []

    rows = (
        session.query(UserSkill.user_id)
        .filter(
            UserSkill.skill_id == skill.id,
            UserSkill.skill_type == SkillType.offered,
        )
        .all()
    )
    return [user_id for (user_id,) in rows]


def reduce_top_skills(links):
    """
    Fold user_skills rows into {user_id: TopSkills}.
    The first offered and the first wanted row per user win; later rows of the
    same type are ignored.
    """
    top = {}
    for link in links:
        entry = top.setdefault(link.user_id, TopSkills())
        if link.skill_type == SkillType.offered and entry.offered is None:
            entry.offered = link.skill
        elif link.skill_type == SkillType.wanted and entry.wanted is None:
            entry.wanted = link.skill
    return top


def fetch_top_skills(session, user_ids):
    if not user_ids:
        return {}

    links = (
        session.query(UserSkill)
        .options(joinedload(UserSkill.skill))
        .filter(UserSkill.user_id.in_(user_ids))
        .all()
    )
    return reduce_top_skills(links)


def fetch_profile_page(session, page=1, query="", skill_filter=""):
    """
    Fetch one directory page.

    - skill_filter: only members offering this skill (by catalog name). When
      nobody offers it the profiles table is not queried at all.
    - query: case-insensitive substring on username or full name.
    - Newest profiles first, PAGE_SIZE per page.

    Raises SQLAlchemyError when the database is unreachable; callers decide
    how to degrade.
    """
    page = max(int(page or 1), 1)
    query = (query or "").strip()
    skill_filter = (skill_filter or "").strip()

    q = session.query(Profile)

    if query:
        q = q.filter(name_matches(query))

    if skill_filter:
        user_ids = offering_user_ids(session, skill_filter)
        if not user_ids:
            logger.debug("No members offer %r, skipping profile query", skill_filter)
            return ProfilePage.empty(page)
        q = q.filter(Profile.user_id.in_(user_ids))

    count = q.order_by(None).count()

    profiles = (
        q.order_by(Profile.created_at.desc(), Profile.id)
        .offset((page - 1) * PAGE_SIZE)
        .limit(PAGE_SIZE)
        .all()
    )

    top_skills = fetch_top_skills(session, [p.user_id for p in profiles])

    return ProfilePage(
        profiles=profiles,
        page=page,
        total_pages=total_pages_for(count),
        top_skills=top_skills,
    )


def list_skill_names(session):
    """Catalog names for the filter dropdown, alphabetically."""
    rows = session.query(Skill.name).order_by(Skill.name).all()
    return [name for (name,) in rows]
