from .auth import AuthUser, UserRole, SessionToken
from .access import RoleDefinition, ManagedUser
from .flights import Flight, Passenger, Infant
from .catalog import Airline, Agency, AccountSettings
from .activity import ActivityLog

__all__ = [
    'AuthUser', 'UserRole', 'SessionToken',
    'RoleDefinition', 'ManagedUser',
    'Flight', 'Passenger', 'Infant',
    'Airline', 'Agency', 'AccountSettings',
    'ActivityLog',
]
