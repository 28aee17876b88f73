"""
Session Facade

Login, refresh et logout comme séquences atomiques au-dessus du
RotationEngine et de l'AccessIssuer, plus les flux de vérification
(email, reset de mot de passe).
"""

from .interfaces import ISessionFacade, SessionState, SessionTokens, ActiveSession
from .session_facade import SessionFacade, ReauthenticationRequired, CredentialReuseDetected
from .verification_flows import VerificationFlows, VerificationFailed
from .bootstrap import SessionStack, build_session_stack

__all__ = [
    # Interfaces
    "ISessionFacade",
    # Data classes
    "SessionState",
    "SessionTokens",
    "ActiveSession",
    # Implementations
    "SessionFacade",
    "VerificationFlows",
    "SessionStack",
    "build_session_stack",
    # Exceptions
    "ReauthenticationRequired",
    "CredentialReuseDetected",
    "VerificationFailed",
]
