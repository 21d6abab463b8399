from enum import Enum


class ApiFailureKind(str, Enum):
    SESSION_EXPIRED = "session_expired"  # Prompt re-login, never retried
    RETRYABLE = "retryable"              # Transport / 5xx / broken body, offer manual retry
    REJECTED = "rejected"                # Other 4xx, retrying the same request won't help
