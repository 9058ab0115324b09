from datetime import timedelta

import pytest
from sqlalchemy import DateTime, bindparam, text

from learnledger import db
from learnledger.awards import approve_submission
from learnledger.dashboards import parse_timeframe, company_metrics, freelancer_metrics, _utcnow
from learnledger.errors import ValidationFailed
from learnledger.submissions import create_submission, reject_submission
from learnledger.utils import atomic

from conftest import COMPANY, FREELANCER, OTHER, seed_project, seed_freelancer

PR_LINK = 'https://github.com/acme/widgets/pull/1'


def _backdate(submission_id, hours):
    query = text("UPDATE submissions SET created_at = :created_at WHERE id = :submission_id").bindparams(
        bindparam('created_at', type_=DateTime))
    with atomic():
        db.session.execute(query, {'created_at': _utcnow() - timedelta(hours=hours), 'submission_id': submission_id})


def test_parse_timeframe():
    assert parse_timeframe('24h') == timedelta(hours=24)
    assert parse_timeframe(' 7D ') == timedelta(days=7)
    assert parse_timeframe(None) == timedelta(hours=24)
    for bad in ('0h', 'week', '12m'):
        with pytest.raises(ValidationFailed):
            parse_timeframe(bad)


def test_company_metrics_counts_and_growth(ctx):
    seed_freelancer()
    seed_freelancer(OTHER, skills='react')
    first = seed_project(prize='100')
    second = seed_project(prize='40')
    with atomic():
        old = create_submission(first['id'], OTHER, PR_LINK)
        recent = create_submission(first['id'], FREELANCER, PR_LINK)
        rejected = create_submission(second['id'], FREELANCER, PR_LINK)
        reject_submission(rejected['id'], COMPANY, 'Not it')
    _backdate(old['id'], 30)
    approve_submission(recent['id'], COMPANY)

    metrics = company_metrics(COMPANY, '24h')

    assert metrics['totalProjects'] == 2
    assert metrics['activeProjects'] == 1
    assert metrics['closedProjects'] == 1
    assert metrics['totalPrizeAmount'] == '140.00'
    assert metrics['totalSubmissions'] == 3
    assert metrics['approvedSubmissions'] == 1
    assert metrics['rejectedSubmissions'] == 1
    # two pull requests in the last day against one the day before
    assert metrics['pullRequests'] == {'timeFrame': '24h', 'count': 2, 'growthPercent': 100}


def test_company_metrics_without_projects(ctx):
    metrics = company_metrics(OTHER)
    assert metrics['totalProjects'] == 0
    assert metrics['totalSubmissions'] == 0
    assert metrics['pullRequests']['count'] == 0


def test_freelancer_metrics(ctx):
    seed_freelancer()
    won = seed_project(prize='100')
    waiting = seed_project(prize='10')
    lost = seed_project(prize='10')
    with atomic():
        winning = create_submission(won['id'], FREELANCER, PR_LINK)
        create_submission(waiting['id'], FREELANCER, PR_LINK)
        losing = create_submission(lost['id'], FREELANCER, PR_LINK)
        reject_submission(losing['id'], COMPANY)
    approve_submission(winning['id'], COMPANY)

    metrics = freelancer_metrics(FREELANCER)

    assert metrics['totalSubmissions'] == 3
    assert metrics['approvedSubmissions'] == 1
    assert metrics['rejectedSubmissions'] == 1
    assert metrics['pendingSubmissions'] == 1
    assert metrics['completedProjects'] == 1
    assert metrics['activeProjects'] == 1
    assert metrics['earnings'] == {'balance': '100.00', 'totalEarned': '100.00', 'currency': 'EDU'}
