import re
from contextlib import contextmanager
from decimal import Decimal, InvalidOperation

from flask import jsonify, request
from flask_jwt_extended import get_jwt_identity
from sqlalchemy import Numeric, bindparam, text

from learnledger import db
from learnledger.errors import ValidationFailed, Unauthorized

WALLET_PATTERN = re.compile(r'^0x[a-fA-F0-9]{40}$')
CENTS = Decimal('0.01')


@contextmanager
def atomic():
    """Commit the session when the block succeeds, roll it back otherwise."""
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


def normalize_identifier(identifier):
    if not identifier or not str(identifier).strip():
        raise ValidationFailed('Identifier is required')
    return str(identifier).strip().lower()


def validate_wallet(wallet, field='walletAddress'):
    if not wallet:
        raise ValidationFailed(f"Missing required field: {field}")
    wallet = str(wallet).strip()
    if not WALLET_PATTERN.match(wallet):
        raise ValidationFailed(f"Invalid {field} format: {wallet}")
    return wallet.lower()


def to_decimal(value, field='amount'):
    if value is None or value == '':
        return Decimal('0')
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationFailed(f"Invalid {field}: {value}")
    if not amount.is_finite():
        raise ValidationFailed(f"Invalid {field}: {value}")
    return amount


def isoformat(value):
    # SQLite hands timestamps back as strings from raw queries
    if value is None:
        return None
    return value.isoformat() if hasattr(value, 'isoformat') else str(value)


def require_fields(data, *fields):
    missing = [field for field in fields if not data.get(field)]
    if missing:
        raise ValidationFailed(f"Missing required fields: {', '.join(missing)}")


def current_identity(*claimed):
    """
    Return the wallet behind the access token.

    Any wallet the client also put in the body must be that same wallet.
    """
    identity = get_jwt_identity()
    for wallet in claimed:
        if wallet and str(wallet).strip().lower() != identity:
            raise Unauthorized('Wallet in request does not match the authenticated wallet')
    return identity


def success(data=None, message=None, status=200):
    return jsonify({'isSuccess': True, 'message': message, 'data': data}), status


def numeric_text(sql, *names):
    """Raw SQL whose named parameters are bound as NUMERIC (SQLite has no Decimal)."""
    return text(sql).bindparams(*[bindparam(name, type_=Numeric(18, 2)) for name in names])


def as_decimal(value):
    if value is None:
        return Decimal('0.00')
    return Decimal(str(value)).quantize(CENTS)


def json_body():
    """The request's JSON object; a missing or unparseable body counts as empty."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationFailed('Request body must be a JSON object')
    return data


def optional_text(value, field):
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationFailed(f"{field} must be a string")
    return value
