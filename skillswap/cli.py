import click

from . import db
from .models import Skill, SkillCategory

SAMPLE_SKILLS = [
    ("JavaScript", SkillCategory.technology, "Modern web development with JavaScript"),
    ("Python", SkillCategory.technology, "Programming with Python for various applications"),
    ("React", SkillCategory.technology, "Frontend framework for building user interfaces"),
    ("UI/UX Design", SkillCategory.design, "User interface and experience design"),
    ("Logo Design", SkillCategory.design, "Creating brand identities and logos"),
    ("Spanish", SkillCategory.language, "Learn or practice Spanish conversation"),
    ("French", SkillCategory.language, "French language tutoring and conversation"),
    ("Guitar", SkillCategory.music, "Learn to play acoustic or electric guitar"),
    ("Piano", SkillCategory.music, "Piano lessons from beginner to advanced"),
    ("Cooking", SkillCategory.cooking, "Learn various cooking techniques and recipes"),
    ("Photography", SkillCategory.design, "Digital photography and photo editing"),
    ("Marketing", SkillCategory.business, "Digital marketing and strategy"),
    ("Writing", SkillCategory.academic, "Creative writing and content creation"),
    ("Yoga", SkillCategory.sports, "Yoga instruction and mindfulness practices"),
    ("Public Speaking", SkillCategory.business, "Improve presentation and communication skills"),
]


def seed_skills():
    """Insert the sample catalog; existing names are left alone. Returns the number added."""
    existing = {name for (name,) in db.session.query(Skill.name).all()}
    added = 0
    for name, category, description in SAMPLE_SKILLS:
        if name in existing:
            continue
        db.session.add(Skill(name=name, category=category, description=description))
        added += 1
    db.session.commit()
    return added


def register_commands(app):

    @app.cli.command("init-db")
    def init_db_command():
        """Create the tables (local development; Supabase uses schema.sql)."""
        db.create_all()
        click.echo("Tables created.")

    @app.cli.command("seed-skills")
    def seed_skills_command():
        """Add the sample skills to the catalog."""
        added = seed_skills()
        click.echo(f"Seed complete, {added} skills added.")
