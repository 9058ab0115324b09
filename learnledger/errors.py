"""
Error kinds raised by the stores and the award workflow.

Every error carries the HTTP status the API answers with and a short `kind`
string clients can branch on. The handlers registered in `create_app` turn
them into `{"isSuccess": false, "message": ..., "kind": ...}` bodies.
"""


class LedgerError(Exception):
    status_code = 500
    kind = 'internal_error'

    def __init__(self, message):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {'isSuccess': False, 'message': self.message, 'kind': self.kind}


class ValidationFailed(LedgerError):
    status_code = 400
    kind = 'validation_failed'


class Unauthenticated(LedgerError):
    status_code = 401
    kind = 'unauthenticated'


class Unauthorized(LedgerError):
    status_code = 403
    kind = 'unauthorized'


class NotFound(LedgerError):
    status_code = 404
    kind = 'not_found'


class ConflictState(LedgerError):
    status_code = 409
    kind = 'conflict'


class ProjectClosed(ConflictState):
    kind = 'project_closed'


class SelfSubmissionForbidden(ConflictState):
    kind = 'self_submission_forbidden'


class MissingRequiredSkill(ConflictState):
    kind = 'missing_required_skill'

    def __init__(self, skill_name):
        super().__init__(f"Missing required skill: {skill_name}")
        self.skill_name = skill_name


class NegativeBalanceRejected(ConflictState):
    kind = 'negative_balance_rejected'


class AwardRolledBack(ConflictState):
    """The award could not be completed; none of its writes were kept."""
    kind = 'award_rolled_back'


class InternalError(LedgerError):
    pass
