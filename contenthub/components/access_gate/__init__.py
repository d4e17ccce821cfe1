"""
Access gate component - public / email-verified access policy.
"""

from ._impl import AccessGate
from .models import AccessDecision, VerifyResult

__all__ = [
    "AccessDecision",
    "AccessGate",
    "VerifyResult",
]
