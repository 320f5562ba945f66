from flask import (
    Blueprint, current_app, flash, jsonify, redirect, render_template,
    request, session, url_for
)
from functools import wraps
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import joinedload
import logging

from . import db
from .directory import ProfilePage, fetch_profile_page, list_skill_names
from .models import (
    Profile,
    Review,
    RequestStatus,
    Skill,
    SkillCategory,
    SkillRequest,
    SkillType,
    UserSkill,
)
from .search import search_all

logger = logging.getLogger(__name__)

DIRECTORY_UNAVAILABLE = "Profiles could not be loaded right now. Please try again later."


# ------------------ BLUEPRINT & GENERIC HELPERS ------------------

main = Blueprint("main", __name__)


def get_auth():
    return current_app.extensions["auth"]


def get_session_factory():
    return current_app.extensions["session_factory"]


def current_user_id():
    return session.get("user_id")


def get_current_profile():
    """
    Profile of the signed-in user, or None.
    The profile row is created by a database trigger on sign up, so it can
    briefly be missing right after registration.
    """
    user_id = current_user_id()
    if not user_id:
        return None
    return db.session.query(Profile).filter(Profile.user_id == user_id).first()


def login_required(f):
    """
    Decorator that checks a user is signed in.
    - Nobody signed in: flash + redirect to the login page.
    """

    @wraps(f)
    def decorated_function(*args, **kwargs):
        if current_user_id() is None:
            flash("Please sign in to continue.")
            return redirect(url_for("main.login"))
        return f(*args, **kwargs)

    return decorated_function


def get_or_redirect(obj, message, redirect_endpoint, redirect_kwargs=None):
    """
    Small helper for 'not found' patterns:
    - obj falsy -> flash + redirect
    - otherwise -> (obj, None)
    """
    if obj:
        return obj, None
    flash(message)
    redirect_kwargs = redirect_kwargs or {}
    return None, redirect(url_for(redirect_endpoint, **redirect_kwargs))


def skill_json(skill):
    if skill is None:
        return None
    return {"name": skill.name, "category": skill.category.value}


def profile_json(profile, top):
    return {
        "id": profile.id,
        "user_id": profile.user_id,
        "username": profile.username,
        "full_name": profile.full_name,
        "bio": profile.bio,
        "avatar_url": profile.avatar_url,
        "location": profile.location,
        "avg_rating": float(profile.avg_rating or 0),
        "total_reviews": profile.total_reviews or 0,
        "top_offered_skill": skill_json(top.offered),
        "top_wanted_skill": skill_json(top.wanted),
    }


def directory_args():
    page = max(request.args.get("page", 1, type=int) or 1, 1)
    q = request.args.get("q", "").strip()
    skill_filter = request.args.get("skill", "").strip()
    return page, q, skill_filter


# ------------------ DIRECTORY ------------------

@main.route("/", methods=["GET"])
def index():
    """
    Landing page + member directory.
    - q: name / username search (submitted with the form, so page resets to 1)
    - skill: only members offering that skill
    """
    page, q, skill_filter = directory_args()

    try:
        listing = fetch_profile_page(db.session, page=page, query=q, skill_filter=skill_filter)
        available_skills = list_skill_names(db.session)
    except SQLAlchemyError:
        logger.exception("Error fetching profiles")
        db.session.rollback()
        flash(DIRECTORY_UNAVAILABLE)
        listing = ProfilePage.empty(page)
        available_skills = []

    return render_template(
        "index.html",
        listing=listing,
        q=q,
        skill_filter=skill_filter,
        available_skills=available_skills,
        current_user_id=current_user_id(),
    )


@main.route("/api/profiles", methods=["GET"])
def api_profiles():
    page, q, skill_filter = directory_args()

    try:
        listing = fetch_profile_page(db.session, page=page, query=q, skill_filter=skill_filter)
    except SQLAlchemyError:
        logger.exception("Error fetching profiles")
        db.session.rollback()
        return jsonify({"error": DIRECTORY_UNAVAILABLE}), 503

    return jsonify({
        "page": listing.page,
        "total_pages": listing.total_pages,
        "profiles": [profile_json(p, listing.top_for(p)) for p in listing.profiles],
    })


@main.route("/api/search", methods=["GET"])
def api_search():
    q = request.args.get("q", "")

    try:
        results = search_all(get_session_factory(), q)
    except SQLAlchemyError:
        logger.exception("Search error for %r", q)
        return jsonify({"error": "Search is unavailable right now."}), 503

    return jsonify({"query": q, "results": [r.to_dict() for r in results]})


# ------------------ SIGN UP / LOGIN / LOGOUT ------------------

@main.route("/signup", methods=["GET", "POST"])
def signup():
    if current_user_id():
        return redirect(url_for("main.dashboard"))

    error = None
    form = {"email": "", "username": ""}

    if request.method == "POST":
        form["email"] = request.form.get("email", "").strip()
        form["username"] = request.form.get("username", "")
        password = request.form.get("password", "")

        result = get_auth().sign_up(form["email"], password, form["username"])
        if result.ok:
            return render_template("signup.html", success=True, form=form)
        error = result.error

    return render_template("signup.html", success=False, form=form, error=error)


@main.route("/login", methods=["GET", "POST"])
def login():
    if current_user_id():
        return redirect(url_for("main.dashboard"))

    error = None
    email = ""

    if request.method == "POST":
        email = request.form.get("email", "").strip()
        password = request.form.get("password", "")

        result = get_auth().sign_in(email, password)
        if result.ok:
            session.clear()
            session["user_id"] = result.user_id
            session["email"] = result.email
            session["access_token"] = result.access_token
            flash(f"Welcome back, {result.email}.")
            return redirect(url_for("main.dashboard"))
        error = result.error

    return render_template("login.html", email=email, error=error)


@main.route("/logout", methods=["POST"])
def logout():
    """Sign out at the auth service and clear the browser session."""
    get_auth().sign_out(current_user_id(), session.get("access_token"))
    session.clear()
    return redirect(url_for("main.index"))


# ------------------ DASHBOARD ------------------

@main.route("/dashboard", methods=["GET"])
@login_required
def dashboard():
    """
    Own profile, offered / wanted skills and the latest reviews received.
    """
    user_id = current_user_id()
    profile = get_current_profile()

    if not profile:
        flash("Your profile is still being set up. Refresh in a moment.")

    links = (
        db.session.query(UserSkill)
        .options(joinedload(UserSkill.skill))
        .filter(UserSkill.user_id == user_id)
        .order_by(UserSkill.created_at)
        .all()
    )
    offered = [link for link in links if link.skill_type == SkillType.offered]
    wanted = [link for link in links if link.skill_type == SkillType.wanted]

    reviews = (
        db.session.query(Review)
        .filter(Review.reviewee_id == user_id)
        .order_by(Review.created_at.desc())
        .limit(10)
        .all()
    )

    return render_template(
        "dashboard.html",
        profile=profile,
        offered=offered,
        wanted=wanted,
        reviews=reviews,
        catalog=list_skill_names(db.session),
        categories=list(SkillCategory),
    )


def parse_proficiency(raw):
    raw = (raw or "").strip()
    if not raw:
        return None, None
    try:
        level = int(raw)
    except ValueError:
        return None, "Proficiency must be a number from 1 to 5."
    if not 1 <= level <= 5:
        return None, "Proficiency must be a number from 1 to 5."
    return level, None


@main.route("/dashboard/skills", methods=["POST"])
@login_required
def add_skill():
    """
    Link a skill to the signed-in user as offered or wanted.
    Unknown skill names are added to the shared catalog (category required).
    """
    user_id = current_user_id()
    name = request.form.get("skill_name", "").strip()
    type_raw = request.form.get("skill_type", "")
    category_raw = request.form.get("category", "")
    description = request.form.get("description", "").strip() or None

    if not name:
        flash("Skill name is required.")
        return redirect(url_for("main.dashboard"))

    try:
        skill_type = SkillType(type_raw)
    except ValueError:
        flash("Choose whether you offer or want this skill.")
        return redirect(url_for("main.dashboard"))

    proficiency, problem = parse_proficiency(request.form.get("proficiency_level"))
    if problem:
        flash(problem)
        return redirect(url_for("main.dashboard"))

    skill = db.session.query(Skill).filter(Skill.name == name).first()
    if skill is None:
        try:
            category = SkillCategory(category_raw)
        except ValueError:
            flash("Pick a category for the new skill.")
            return redirect(url_for("main.dashboard"))
        skill = Skill(name=name, category=category, description=description)
        db.session.add(skill)
        db.session.flush()

    exists = (
        db.session.query(UserSkill)
        .filter(
            UserSkill.user_id == user_id,
            UserSkill.skill_id == skill.id,
            UserSkill.skill_type == skill_type,
        )
        .first()
        is not None
    )
    if exists:
        db.session.rollback()
        flash(f"{skill.name} is already in your {skill_type.value} skills.")
        return redirect(url_for("main.dashboard"))

    db.session.add(UserSkill(
        user_id=user_id,
        skill_id=skill.id,
        skill_type=skill_type,
        proficiency_level=proficiency,
    ))

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        logger.warning("Duplicate skill link for user %s and skill %r", user_id, name)
        flash(f"{name} is already in your {skill_type.value} skills.")
        return redirect(url_for("main.dashboard"))

    flash(f"Added {skill.name} to your {skill_type.value} skills.")
    return redirect(url_for("main.dashboard"))


@main.route("/dashboard/skills/<link_id>/delete", methods=["POST"])
@login_required
def delete_skill(link_id):
    link = db.session.get(UserSkill, link_id)
    if link is None or link.user_id != current_user_id():
        flash("Skill not found.")
        return redirect(url_for("main.dashboard"))

    db.session.delete(link)
    db.session.commit()
    flash("Skill removed.")
    return redirect(url_for("main.dashboard"))


# ------------------ SKILL REQUESTS ------------------

def first_offered_skill_id(user_id):
    link = (
        db.session.query(UserSkill)
        .filter(
            UserSkill.user_id == user_id,
            UserSkill.skill_type == SkillType.offered,
        )
        .order_by(UserSkill.created_at)
        .first()
    )
    return link.skill_id if link else None


def offers_skill(user_id, skill_id):
    return (
        db.session.query(UserSkill)
        .filter(
            UserSkill.user_id == user_id,
            UserSkill.skill_id == skill_id,
            UserSkill.skill_type == SkillType.offered,
        )
        .first()
        is not None
    )


@main.route("/profiles/<profile_id>/request", methods=["POST"])
def request_skill(profile_id):
    """
    Request action from a profile card.
    - Requested skill: the one chosen in the form, else the provider's first
      offered skill.
    - Offered skill (what the requester gives back) is optional.
    """
    user_id = current_user_id()
    if not user_id:
        flash("You need to be logged in to send skill requests.")
        return redirect(url_for("main.login"))

    provider, guard = get_or_redirect(
        db.session.get(Profile, profile_id),
        "Profile not found.",
        "main.index",
    )
    if guard:
        return guard

    if provider.user_id == user_id:
        flash("You cannot send a skill request to yourself.")
        return redirect(url_for("main.index"))

    requested_skill_id = request.form.get("requested_skill_id") or first_offered_skill_id(provider.user_id)
    if not requested_skill_id or not offers_skill(provider.user_id, requested_skill_id):
        flash(f"{provider.full_name} has not listed that skill to offer.")
        return redirect(url_for("main.index"))

    offered_skill_id = request.form.get("offered_skill_id") or None
    if offered_skill_id and db.session.get(Skill, offered_skill_id) is None:
        flash("The skill you offered in return does not exist.")
        return redirect(url_for("main.index"))

    skill_request = SkillRequest(
        requester_id=user_id,
        provider_id=provider.user_id,
        requested_skill_id=requested_skill_id,
        offered_skill_id=offered_skill_id,
        message=request.form.get("message", "").strip() or None,
        status=RequestStatus.pending,
    )
    db.session.add(skill_request)
    db.session.commit()

    logger.info("Skill request %s from %s to %s", skill_request.id, user_id, provider.user_id)
    flash(f"Skill request sent to {provider.full_name}.")
    return redirect(url_for("main.swaps"))


@main.route("/swaps", methods=["GET"])
@login_required
def swaps():
    user_id = current_user_id()

    base = db.session.query(SkillRequest).options(
        joinedload(SkillRequest.requested_skill),
        joinedload(SkillRequest.offered_skill),
    )
    incoming = (
        base.filter(SkillRequest.provider_id == user_id)
        .order_by(SkillRequest.created_at.desc())
        .all()
    )
    outgoing = (
        base.filter(SkillRequest.requester_id == user_id)
        .order_by(SkillRequest.created_at.desc())
        .all()
    )

    return render_template(
        "swaps.html",
        incoming=incoming,
        outgoing=outgoing,
        statuses=list(RequestStatus),
    )


@main.route("/swaps/<request_id>/status", methods=["POST"])
@login_required
def update_swap_status(request_id):
    """Either party of a request may change its status."""
    user_id = current_user_id()

    skill_request = db.session.get(SkillRequest, request_id)
    if skill_request is None or not skill_request.involves(user_id):
        flash("Request not found.")
        return redirect(url_for("main.swaps"))

    try:
        status = RequestStatus(request.form.get("status", ""))
    except ValueError:
        flash("Unknown request status.")
        return redirect(url_for("main.swaps"))

    skill_request.status = status
    db.session.commit()
    flash(f"Request marked as {status.value}.")
    return redirect(url_for("main.swaps"))


# ------------------ PLACEHOLDERS ------------------

@main.route("/profile")
@login_required
def profile_settings():
    return render_template(
        "coming_soon.html",
        title="Profile Settings",
        heading="Profile Management",
        text="Profile editing functionality will be implemented here.",
    )


@main.route("/admin")
@login_required
def admin_dashboard():
    return render_template(
        "coming_soon.html",
        title="Admin Dashboard",
        heading="Platform Administration",
        text="Manage users, monitor platform activity, and configure system settings.",
    )
