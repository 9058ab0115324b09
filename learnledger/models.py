from sqlalchemy import false
from learnledger import db


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    wallet_address = db.Column(db.String(42), nullable=False, unique=True)
    role = db.Column(db.String(20), nullable=False)
    display_name = db.Column(db.String(255), nullable=True)
    password_hash = db.Column(db.Text, nullable=False)
    # Free-text skills as typed at registration; user_skills is authoritative
    skills = db.Column(db.Text, nullable=True)
    short_description = db.Column(db.Text, nullable=True)
    github_profile_username = db.Column(db.String(100), nullable=True)
    created_at = db.Column(db.DateTime, server_default=db.func.now(), nullable=False)
    updated_at = db.Column(db.DateTime, server_default=db.func.now(), nullable=False)


class Skill(db.Model):
    __tablename__ = 'skills'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, nullable=True)


# Skill names are unique regardless of case
db.Index('uq_skills_name_lower', db.func.lower(Skill.name), unique=True)


class UserSkill(db.Model):
    __tablename__ = 'user_skills'
    __table_args__ = (
        db.UniqueConstraint('user_identifier', 'skill_id', name='uq_user_skills_user_skill'),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_identifier = db.Column(db.String(42), nullable=False, index=True)
    skill_id = db.Column(db.Integer, db.ForeignKey('skills.id', ondelete='CASCADE'), nullable=False)
    added_at = db.Column(db.DateTime, server_default=db.func.now(), nullable=False)


class Project(db.Model):
    __tablename__ = 'projects'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    prize_amount = db.Column(db.Numeric(12, 2), nullable=False, server_default='0')
    status = db.Column(db.String(20), nullable=False, server_default='open')
    owner = db.Column(db.String(42), nullable=False, index=True)
    required_skills = db.Column(db.Text, nullable=True)
    completion_skills = db.Column(db.Text, nullable=True)
    assigned_freelancer = db.Column(db.String(42), nullable=True)
    repo = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, server_default=db.func.now(), nullable=False)
    updated_at = db.Column(db.DateTime, server_default=db.func.now(), nullable=False)


class Submission(db.Model):
    __tablename__ = 'submissions'

    id = db.Column(db.Integer, primary_key=True)
    # No foreign key: deleting a project leaves its submissions in place
    project_id = db.Column(db.Integer, nullable=False, index=True)
    freelancer = db.Column(db.String(42), nullable=False, index=True)
    pr_link = db.Column(db.Text, nullable=False)
    submission_text = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(20), nullable=False, server_default='pending')
    is_merged = db.Column(db.Boolean, nullable=False, server_default=false())
    rejection_reason = db.Column(db.Text, nullable=True)
    repo_owner = db.Column(db.String(255), nullable=False)
    repo_name = db.Column(db.String(255), nullable=False)
    pr_number = db.Column(db.String(20), nullable=False)
    created_at = db.Column(db.DateTime, server_default=db.func.now(), nullable=False)
    updated_at = db.Column(db.DateTime, server_default=db.func.now(), nullable=False)


class UserBalance(db.Model):
    __tablename__ = 'user_balances'

    id = db.Column(db.Integer, primary_key=True)
    identifier = db.Column(db.String(42), nullable=False, unique=True)
    balance = db.Column(db.Numeric(18, 2), nullable=False, server_default='0')
    updated_at = db.Column(db.DateTime, server_default=db.func.now(), nullable=False)


class BalanceCredit(db.Model):
    """Journal of keyed credits; a key is applied to the ledger at most once."""
    __tablename__ = 'balance_credits'

    id = db.Column(db.Integer, primary_key=True)
    credit_key = db.Column(db.String(100), nullable=False, unique=True)
    identifier = db.Column(db.String(42), nullable=False, index=True)
    amount = db.Column(db.Numeric(18, 2), nullable=False)
    project_id = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime, server_default=db.func.now(), nullable=False)


class Bookmark(db.Model):
    __tablename__ = 'bookmarks'
    __table_args__ = (
        db.UniqueConstraint('user_identifier', 'project_id', name='uq_bookmarks_user_project'),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_identifier = db.Column(db.String(42), nullable=False, index=True)
    # No foreign key: bookmarks of a deleted project are skipped when listed
    project_id = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, server_default=db.func.now(), nullable=False)
