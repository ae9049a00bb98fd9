"""Entity models for CA resources.

All models are frozen dataclasses built from CA response bodies.
"""

from acmer53.models.authorization import Authorization
from acmer53.models.certificate import IssuedCertificate
from acmer53.models.challenge import Challenge
from acmer53.models.registration import Registration

__all__ = [
    "Authorization",
    "Challenge",
    "IssuedCertificate",
    "Registration",
]
