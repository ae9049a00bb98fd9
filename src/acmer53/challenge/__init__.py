"""DNS-01 challenge response computation and TXT record checks."""

from acmer53.challenge.dns01 import (
    ChallengeResponse,
    TxtRecordChecker,
    build_challenge_response,
    record_name,
)

__all__ = [
    "ChallengeResponse",
    "TxtRecordChecker",
    "build_challenge_response",
    "record_name",
]
