"""Lifecycle vocabulary shared by services, events and caches."""

from enum import Enum


class LifecycleEventType(str, Enum):
    """Events emitted after a lifecycle transition has been committed."""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    RESTORED = "restored"
    FORCE_DELETED = "force_deleted"
    # Hey future me - soft delete emits DELETED *and* this one. Caches forget the
    # single entry on DELETED and the paginated lists on LIST_INVALIDATED.
    LIST_INVALIDATED = "list_invalidated"


class ProfilePhotoOutcome(str, Enum):
    """Result of detaching a profile photo."""

    REMOVED = "removed"
    NOTHING_TO_REMOVE = "nothing_to_remove"


class OAuthProvider(str, Enum):
    """OAuth providers we can link accounts with."""

    SPOTIFY = "spotify"
    GOOGLE = "google"


PROFILE_PHOTO_COLLECTION = "profile_photos"
