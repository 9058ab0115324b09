"""
Off-chain token balances.

Every adjustment is a single statement evaluated by the database
(`balance = balance + :amount`), so concurrent adjustments for the same
wallet cannot overwrite each other. Keyed credits go through the
`balance_credits` journal first, which makes a retried award a no-op.
"""
from flask import current_app
from sqlalchemy import text

from learnledger import db
from learnledger.errors import NegativeBalanceRejected
from learnledger.utils import normalize_identifier, to_decimal, as_decimal, isoformat, numeric_text

NEGATIVE_BALANCE_MESSAGE = 'Operation would cause negative balance, aborted.'


def _balance_to_dict(row):
    return {
        'identifier': row.identifier,
        'balance': str(as_decimal(row.balance)),
        'updatedAt': isoformat(row.updated_at),
    }


def _find_balance(identifier):
    query = "SELECT identifier, balance, updated_at FROM user_balances WHERE identifier = :identifier;"
    return db.session.execute(text(query), {'identifier': identifier}).fetchone()


def adjust_balance(identifier, amount, prevent_negative=True):
    """
    Add `amount` (may be negative) to the wallet's balance.

    A missing row counts as a zero balance. With `prevent_negative`, an
    adjustment that would leave the balance below zero raises
    NegativeBalanceRejected and nothing is written.
    """
    identifier = normalize_identifier(identifier)
    amount = to_decimal(amount)
    params = {'identifier': identifier, 'amount': amount}
    row = None

    if prevent_negative:
        guarded_update = """
        UPDATE user_balances
        SET balance = balance + :amount, updated_at = CURRENT_TIMESTAMP
        WHERE identifier = :identifier AND balance + :amount >= 0
        RETURNING identifier, balance, updated_at;
        """
        row = db.session.execute(numeric_text(guarded_update, 'amount'), params).fetchone()
        if row is None and (amount < 0 or _find_balance(identifier) is not None):
            current_app.logger.info(f"Rejected adjustment of {amount} for {identifier}: balance would go negative")
            raise NegativeBalanceRejected(NEGATIVE_BALANCE_MESSAGE)

    if row is None:
        upsert = """
        INSERT INTO user_balances (identifier, balance, updated_at)
        VALUES (:identifier, :amount, CURRENT_TIMESTAMP)
        ON CONFLICT (identifier) DO UPDATE
        SET balance = user_balances.balance + excluded.balance, updated_at = CURRENT_TIMESTAMP
        """
        if prevent_negative:
            # A row created concurrently since the guarded update still obeys the floor
            upsert += " WHERE user_balances.balance + excluded.balance >= 0"
        upsert += " RETURNING identifier, balance, updated_at;"
        row = db.session.execute(numeric_text(upsert, 'amount'), params).fetchone()
        if row is None:
            raise NegativeBalanceRejected(NEGATIVE_BALANCE_MESSAGE)

    current_app.logger.info(f"Balance of {identifier} adjusted by {amount}, now {as_decimal(row.balance)}")
    return _balance_to_dict(row)


def credit_once(identifier, amount, credit_key, project_id=None, prevent_negative=True):
    """
    Apply a credit identified by `credit_key` exactly once.

    The journal insert and the balance adjustment share the caller's
    transaction; a key that was already applied leaves the balance untouched.
    """
    identifier = normalize_identifier(identifier)
    amount = to_decimal(amount)

    journal_insert = """
    INSERT INTO balance_credits (credit_key, identifier, amount, project_id)
    VALUES (:credit_key, :identifier, :amount, :project_id)
    ON CONFLICT (credit_key) DO NOTHING
    RETURNING id;
    """
    inserted = db.session.execute(numeric_text(journal_insert, 'amount'), {
        'credit_key': credit_key,
        'identifier': identifier,
        'amount': amount,
        'project_id': project_id,
    }).fetchone()

    if inserted is None:
        current_app.logger.info(f"Credit {credit_key} already applied, skipping")
        row = _find_balance(identifier)
        return _balance_to_dict(row) if row else {'identifier': identifier, 'balance': '0.00', 'updatedAt': None}

    return adjust_balance(identifier, amount, prevent_negative=prevent_negative)


def get_balance(identifier):
    row = _find_balance(normalize_identifier(identifier))
    return as_decimal(row.balance) if row else as_decimal(0)


def list_credits(identifier):
    """Credits received by a wallet, newest first, with the paying project's name."""
    query = """
    SELECT bc.credit_key, bc.amount, bc.project_id, bc.created_at, p.name AS project_name
    FROM balance_credits bc
    LEFT JOIN projects p ON p.id = bc.project_id
    WHERE bc.identifier = :identifier
    ORDER BY bc.created_at DESC, bc.id DESC;
    """
    rows = db.session.execute(text(query), {'identifier': normalize_identifier(identifier)}).fetchall()
    return [
        {
            'creditKey': row.credit_key,
            'amount': str(as_decimal(row.amount)),
            'projectId': row.project_id,
            'projectName': row.project_name,
            'creditedAt': isoformat(row.created_at),
        }
        for row in rows
    ]
