"""
Error taxonomy for the interpretation protocol.

Validation problems with message text are *not* represented here: they are
returned as structured results by `mmstr.validation.character_validation`.
Everything below is raised and aborts the current operation.

Hierarchy
---------
- MMSTRError
    - NotFoundError            : a required entity link is broken
    - InvalidTransitionError   : an illegal move in the interpretation state machine
        - MaxAttemptsExceededError
        - ChainLockedError
    - AIAdapterError           : failures coming out of the LLM judge
        - AITimeoutError
        - MalformedResponseError
            - InvalidJudgmentError
        - AIAuthError
        - AIRequestError
        - TransientAIError
"""


class MMSTRError(Exception):
    """Base class for every error raised by the application."""


class NotFoundError(MMSTRError):
    """
    Raised when an entity that must exist cannot be resolved.

    Parameters
    ----------
    entity : str
        Human-readable entity name (e.g. "Interpretation").
    entity_id : object
        The identifier that failed to resolve.
    """

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class InvalidTransitionError(MMSTRError):
    """Raised when a requested state change is not legal from the current state."""


class MaxAttemptsExceededError(InvalidTransitionError):
    """Raised when an interpretation would exceed the conversation's max attempts."""

    def __init__(self, attempt_number: int, max_attempts: int):
        self.attempt_number = attempt_number
        self.max_attempts = max_attempts
        super().__init__(
            f"Attempt {attempt_number} exceeds the maximum of {max_attempts} interpretation attempts"
        )


class ChainLockedError(InvalidTransitionError):
    """Raised when the (message, user) chain already carries a final arbitration ruling."""


class AIAdapterError(MMSTRError):
    """Base class for LLM judge failures."""


class AITimeoutError(AIAdapterError):
    """The overall deadline for a judge call expired (retries included)."""


class MalformedResponseError(AIAdapterError):
    """The model answered, but not with the JSON contract we asked for."""


class InvalidJudgmentError(MalformedResponseError):
    """The JSON parsed, but carries a value outside the allowed set (e.g. result='maybe')."""


class AIAuthError(AIAdapterError):
    """The provider rejected our credentials or permissions (401/403). Never retried."""


class AIRequestError(AIAdapterError):
    """The provider rejected the request itself (400). Never retried."""


class TransientAIError(AIAdapterError):
    """Rate limit, network or 5xx failure. Retried with backoff until retries run out."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)
