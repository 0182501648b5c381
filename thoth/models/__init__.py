"""Models module."""

from .user import (
    Identity, UserCreate, RegisterResponse, Token, TokenData, Profile, RegistrationResult,
)
from .chat import (
    Author, MessageStatus, ChatMessage, ChatThread, QueryOptions, QueryRequest, QueryResponse,
)
from .navigation import (
    AuthState, RedirectReason, TokenVerdict, Allow, RedirectToLogin, RedirectToHome,
    NavigationDecision,
)

__all__ = [
    'Identity', 'UserCreate', 'RegisterResponse', 'Token', 'TokenData', 'Profile',
    'RegistrationResult',
    'Author', 'MessageStatus', 'ChatMessage', 'ChatThread', 'QueryOptions', 'QueryRequest',
    'QueryResponse',
    'AuthState', 'RedirectReason', 'TokenVerdict', 'Allow', 'RedirectToLogin',
    'RedirectToHome', 'NavigationDecision',
]
