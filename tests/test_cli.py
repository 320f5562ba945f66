from skillswap import db
from skillswap.cli import SAMPLE_SKILLS
from skillswap.models import Skill


def test_seed_skills_is_idempotent(app, make_skill):
    make_skill("Python")
    runner = app.test_cli_runner()

    first = runner.invoke(args=["seed-skills"])
    second = runner.invoke(args=["seed-skills"])

    assert f"{len(SAMPLE_SKILLS) - 1} skills added" in first.output
    assert "0 skills added" in second.output
    assert db.session.query(Skill).count() == len(SAMPLE_SKILLS)


def test_init_db(app):
    result = app.test_cli_runner().invoke(args=["init-db"])

    assert "Tables created." in result.output
