"""
Dashboard summaries for companies and freelancers.

Company metrics build on `project_stats`; freelancer metrics build on the
balance ledger and its credit journal. Both are read-only.
"""
import re
from datetime import datetime, timedelta, timezone

from sqlalchemy import DateTime, bindparam, text

from learnledger import db
from learnledger.balances import get_balance, list_credits
from learnledger.errors import ValidationFailed
from learnledger.projects import project_stats
from learnledger.utils import normalize_identifier, as_decimal

TOKEN_SYMBOL = 'EDU'

TIMEFRAME_PATTERN = re.compile(r'^(\d+)([hd])$')


def parse_timeframe(timeframe):
    """'24h' or '7d' -> timedelta."""
    match = TIMEFRAME_PATTERN.match((timeframe or '24h').strip().lower())
    if not match or int(match.group(1)) == 0:
        raise ValidationFailed(f"Invalid timeframe: {timeframe} (use e.g. 24h or 7d)")
    amount, unit = int(match.group(1)), match.group(2)
    return timedelta(hours=amount) if unit == 'h' else timedelta(days=amount)


def _utcnow():
    # Timestamps are stored naive, in the database's clock (UTC)
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _count_submissions_between(owner, start, end):
    query = text("""
    SELECT COUNT(*)
    FROM submissions s
    JOIN projects p ON p.id = s.project_id
    WHERE p.owner = :owner AND s.created_at > :start AND s.created_at <= :end;
    """).bindparams(bindparam('start', type_=DateTime), bindparam('end', type_=DateTime))
    return db.session.execute(query, {'owner': owner, 'start': start, 'end': end}).scalar() or 0


def _submission_counts(condition, params):
    query = f"""
    SELECT COUNT(*) AS total,
           COALESCE(SUM(CASE WHEN s.status = 'approved' THEN 1 ELSE 0 END), 0) AS approved,
           COALESCE(SUM(CASE WHEN s.status = 'rejected' THEN 1 ELSE 0 END), 0) AS rejected,
           COALESCE(SUM(CASE WHEN s.status = 'pending' THEN 1 ELSE 0 END), 0) AS pending
    FROM submissions s
    LEFT JOIN projects p ON p.id = s.project_id
    WHERE {condition};
    """
    row = db.session.execute(text(query), params).fetchone()
    return {
        'totalSubmissions': int(row.total or 0),
        'approvedSubmissions': int(row.approved or 0),
        'rejectedSubmissions': int(row.rejected or 0),
        'pendingSubmissions': int(row.pending or 0),
    }


def company_metrics(owner, timeframe='24h'):
    """
    Project and submission counts for a company, plus how many pull requests
    arrived during `timeframe` compared with the period just before it.
    """
    owner = normalize_identifier(owner)
    window = parse_timeframe(timeframe)
    summary = project_stats(owner=owner)['summary']

    now = _utcnow()
    recent = _count_submissions_between(owner, now - window, now + timedelta(minutes=1))
    previous = _count_submissions_between(owner, now - 2 * window, now - window)
    growth = round((recent - previous) / previous * 100) if previous else 0

    metrics = _submission_counts('p.owner = :owner', {'owner': owner})
    metrics.update({
        'totalProjects': summary['totalProjects'],
        'activeProjects': summary['openProjects'],
        'closedProjects': summary['closedProjects'],
        'totalPrizeAmount': summary['totalPrizeAmount'],
        'pullRequests': {
            'timeFrame': (timeframe or '24h').strip().lower(),
            'count': recent,
            'growthPercent': growth,
        },
        'statsUpdatedAt': now.isoformat(),
    })
    return metrics


def freelancer_metrics(freelancer):
    freelancer = normalize_identifier(freelancer)
    metrics = _submission_counts('s.freelancer = :freelancer', {'freelancer': freelancer})

    # A project counts once: completed if any of its submissions won, else active while open and pending
    query = """
    SELECT s.project_id, p.status AS project_status,
           MAX(CASE WHEN s.status = 'approved' THEN 1 ELSE 0 END) AS won,
           MAX(CASE WHEN s.status = 'pending' THEN 1 ELSE 0 END) AS waiting
    FROM submissions s
    LEFT JOIN projects p ON p.id = s.project_id
    WHERE s.freelancer = :freelancer
    GROUP BY s.project_id, p.status;
    """
    completed = active = 0
    for row in db.session.execute(text(query), {'freelancer': freelancer}).fetchall():
        if row.won:
            completed += 1
        elif row.waiting and row.project_status == 'open':
            active += 1

    credits = list_credits(freelancer)
    metrics.update({
        'activeProjects': active,
        'completedProjects': completed,
        'earnings': {
            'balance': str(get_balance(freelancer)),
            'totalEarned': str(sum((as_decimal(item['amount']) for item in credits), as_decimal(0))),
            'currency': TOKEN_SYMBOL,
        },
        'statsUpdatedAt': _utcnow().isoformat(),
    })
    return metrics
