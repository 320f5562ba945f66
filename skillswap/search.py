"""
Search over skills and members.

search_all() answers a single query. LiveSearch wraps it for search-as-you-type:
input is debounced, and every submit bumps a generation counter so a response
that arrives after newer input is dropped instead of overwriting fresher
results.
"""
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass
from typing import Callable, List, Optional
import logging
import threading

from .directory import contains_pattern, name_matches
from .models import Profile, Skill

SEARCH_LIMIT = 5
DEBOUNCE_SECONDS = 0.3

logger = logging.getLogger(__name__)


@dataclass
class SearchResult:
    type: str  # "skill" or "user"
    id: str
    name: str
    category: Optional[str] = None
    description: Optional[str] = None
    avatar_url: Optional[str] = None

    def to_dict(self):
        return asdict(self)


def find_skills(session, text, limit=SEARCH_LIMIT):
    skills = (
        session.query(Skill)
        .filter(Skill.name.ilike(contains_pattern(text), escape="\\"))
        .limit(limit)
        .all()
    )
    return [
        SearchResult(
            type="skill",
            id=skill.id,
            name=skill.name,
            category=skill.category.value if skill.category else None,
            description=skill.description,
        )
        for skill in skills
    ]


def find_profiles(session, text, limit=SEARCH_LIMIT):
    profiles = (
        session.query(Profile)
        .filter(name_matches(text))
        .limit(limit)
        .all()
    )
    return [
        SearchResult(
            type="user",
            id=profile.id,
            name=profile.full_name,
            description=profile.bio,
            avatar_url=profile.avatar_url,
        )
        for profile in profiles
    ]


def _run_finder(session_factory, finder, text):
    session = session_factory()
    try:
        return finder(session, text)
    finally:
        session.close()


def search_all(session_factory, text):
    """
    Skills first, then members, at most SEARCH_LIMIT of each.
    Both queries run at the same time, each on its own session.
    Blank input returns [] without touching the database.
    """
    text = (text or "").strip()
    if not text:
        return []

    with ThreadPoolExecutor(max_workers=2) as pool:
        skills = pool.submit(_run_finder, session_factory, find_skills, text)
        profiles = pool.submit(_run_finder, session_factory, find_profiles, text)
        return skills.result() + profiles.result()


@dataclass
class SearchUpdate:
    generation: int
    query: str
    results: List[SearchResult]

    def to_dict(self):
        return {
            "generation": self.generation,
            "query": self.query,
            "results": [r.to_dict() for r in self.results],
        }


class LiveSearch:
    """
    Debounced search for one client.

    run_search(text) -> list of SearchResult, called on the timer thread.
    on_results(SearchUpdate) is called for the latest input only.
    """

    def __init__(
        self,
        run_search: Callable[[str], List[SearchResult]],
        on_results: Callable[[SearchUpdate], None],
        delay: float = DEBOUNCE_SECONDS,
        timer_factory=threading.Timer,
    ):
        self._run_search = run_search
        self._on_results = on_results
        self._delay = delay
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._timer = None
        self._generation = 0
        self._closed = False

    @property
    def generation(self):
        return self._generation

    def submit(self, text):
        """Register new input; returns the generation issued for it."""
        text = text or ""
        with self._lock:
            self._cancel_pending()
            self._generation += 1
            generation = self._generation

            if self._closed:
                return generation

            if not text.strip():
                self._on_results(SearchUpdate(generation, text, []))
                return generation

            timer = self._timer_factory(self._delay, self._fire, args=(generation, text))
            timer.daemon = True
            self._timer = timer
            timer.start()
            return generation

    def close(self):
        with self._lock:
            self._closed = True
            self._generation += 1
            self._cancel_pending()

    def _cancel_pending(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self, generation, text):
        with self._lock:
            if generation != self._generation:
                return
            self._timer = None

        try:
            results = self._run_search(text)
        except Exception:
            logger.exception("Search error for %r", text)
            return

        self._publish(generation, text, results)

    def _publish(self, generation, text, results):
        # publishing under the lock keeps a stale result from landing after
        # a fresher one
        with self._lock:
            if generation != self._generation:
                logger.debug("Dropping stale search results (generation %s < %s)",
                             generation, self._generation)
                return False
            self._on_results(SearchUpdate(generation, text, results))
            return True
