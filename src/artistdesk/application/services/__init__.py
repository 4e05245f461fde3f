"""Application services."""

from artistdesk.application.services.actor_service import (
    ActorLifecycleService,
    AdminService,
    UserService,
)
from artistdesk.application.services.artist_service import ArtistService
from artistdesk.application.services.lifecycle_service import SoftDeleteLifecycleService
from artistdesk.application.services.notification_service import NotificationService
from artistdesk.application.services.oauth_credential_service import (
    OAuthCredentialService,
    ProviderProfile,
)
from artistdesk.application.services.oauth_login_service import (
    DEFAULT_SCOPES,
    OAuthLoginResult,
    OAuthLoginService,
)
from artistdesk.application.services.role_service import RoleService
from artistdesk.application.services.temporary_file_service import TemporaryFileService

__all__ = [
    "DEFAULT_SCOPES",
    "ActorLifecycleService",
    "AdminService",
    "ArtistService",
    "NotificationService",
    "OAuthCredentialService",
    "OAuthLoginResult",
    "OAuthLoginService",
    "ProviderProfile",
    "RoleService",
    "SoftDeleteLifecycleService",
    "TemporaryFileService",
]
