# exceptions.py
# Ошибки ядра: у каждого класса свой HTTP-статус и машинный код


class LedgerError(Exception):
    """Base exception for all ledger and ranking errors."""

    status_code = 500
    code = "ledger_error"

    def __init__(self, message=""):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__

    def to_dict(self):
        return {"message": self.message, "error": self.code}


class InvalidAward(LedgerError):
    """Award rejected: points outside [1, 10] or malformed claim type."""

    status_code = 400
    code = "invalid_award"


class UnknownParticipant(InvalidAward):
    """Participant not found or inactive."""

    status_code = 404
    code = "unknown_participant"

    def __init__(self, participant_id):
        super().__init__(f"Participant {participant_id} not found or inactive")
        self.participant_id = participant_id


class NotFound(LedgerError):
    """Referenced claim or participant does not exist."""

    status_code = 404
    code = "not_found"

    def __init__(self, entity, entity_id):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class InvalidQuery(LedgerError):
    """Malformed read request (period, limit, filter)."""

    status_code = 400
    code = "invalid_query"


class DuplicateParticipant(LedgerError):
    """Participant with this email already exists."""

    status_code = 409
    code = "duplicate_participant"


class AggregateInconsistency(LedgerError):
    """Cached totals drifted from the ledger. Logged and repaired, never surfaced."""

    code = "aggregate_inconsistency"

    def __init__(self, participant_id, stored, actual):
        super().__init__(
            f"Participant {participant_id}: aggregate "
            f"totalPoints={stored[0]} claimsCount={stored[1]}, "
            f"ledger totalPoints={actual[0]} claimsCount={actual[1]}"
        )
        self.participant_id = participant_id
        self.stored = stored
        self.actual = actual


class TransientStoreFailure(LedgerError):
    """Underlying store unavailable, retry later."""

    status_code = 503
    code = "store_unavailable"
    retry_after = 1


class QueryTimeout(LedgerError):
    """Query exceeded its deadline; no partial result is returned."""

    status_code = 504
    code = "query_timeout"
