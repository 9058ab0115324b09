import pytest
from sqlalchemy import text

from learnledger import db
from learnledger.errors import ConflictState, ValidationFailed
from learnledger.profiles import backfill_user_skills, register_profile, find_profile
from learnledger.skills import (
    get_or_create_skill, add_skill_to_user, fetch_user_skills, sync_user_skills, parse_skill_list,
)
from learnledger.utils import atomic

from conftest import FREELANCER, OTHER


def test_parse_skill_list_trims_and_dedups():
    assert parse_skill_list(' React, solidity ,,react, UI/UX ') == ['React', 'solidity', 'UI/UX']
    assert parse_skill_list(None) == []
    with pytest.raises(ValidationFailed):
        parse_skill_list(['react', 'vue'])


def test_get_or_create_skill_is_case_insensitive(ctx):
    with atomic():
        first = get_or_create_skill('React')
        second = get_or_create_skill('react')
        third = get_or_create_skill('REACT ')
        fourth = get_or_create_skill('React')

    assert first['id'] == second['id'] == third['id'] == fourth['id']
    assert first['name'] == 'React'
    count = db.session.execute(text("SELECT COUNT(*) FROM skills")).scalar()
    assert count == 1


def test_empty_skill_name_is_rejected(ctx):
    with pytest.raises(ValidationFailed):
        get_or_create_skill('   ')


def test_add_skill_to_user_rejects_duplicates(ctx):
    with atomic():
        skill = get_or_create_skill('solidity')
        add_skill_to_user(FREELANCER, skill['id'])

    with pytest.raises(ConflictState) as excinfo:
        add_skill_to_user(FREELANCER, skill['id'])
    assert 'already has this skill' in excinfo.value.message


def test_fetch_user_skills_reads_bridge_rows(ctx):
    with atomic():
        sync_user_skills(FREELANCER, 'react, Solidity')

    names = [skill['skillName'] for skill in fetch_user_skills(FREELANCER)]
    assert names == ['react', 'Solidity']
    assert all(skill['skillId'] for skill in fetch_user_skills(FREELANCER))
    assert fetch_user_skills(OTHER) == []


def test_sync_user_skills_skips_held_skills(ctx):
    with atomic():
        assert sync_user_skills(FREELANCER, 'react') == ['react']
        assert sync_user_skills(FREELANCER, 'React, vue') == ['vue']
    assert len(fetch_user_skills(FREELANCER)) == 2


def test_backfill_turns_legacy_text_into_bridge_rows(ctx):
    # A profile written before the bridge table was in use
    db.session.execute(text("""
        INSERT INTO users (wallet_address, role, password_hash, skills)
        VALUES (:wallet, 'freelancer', 'x', 'python, flask')
    """), {'wallet': OTHER})
    db.session.commit()

    with atomic():
        assert backfill_user_skills() == 2
    assert {skill['skillName'] for skill in fetch_user_skills(OTHER)} == {'python', 'flask'}


def test_registration_rejects_non_text_skills(ctx):
    with pytest.raises(ValidationFailed):
        register_profile(FREELANCER, 'freelancer', 'secret', skills=['react'])
    with pytest.raises(ValidationFailed):
        get_or_create_skill(['react'])
    assert find_profile(FREELANCER) is None
