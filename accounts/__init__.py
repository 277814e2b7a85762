"""
Accounts Module for Imposter.

Registration, login, identity verification and game statistics.
"""

from .service import AccountService, UserData

__all__ = [
    'AccountService',
    'UserData'
]
