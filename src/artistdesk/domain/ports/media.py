"""Ports the lifecycle manager consumes but does not implement."""

from abc import ABC, abstractmethod
from typing import Protocol


class MediaOwner(Protocol):
    """Anything media can be attached to (User, Admin, Artist rows)."""

    id: int

    @property
    def media_type(self) -> str: ...


class ITemporaryFileMover(ABC):
    """Moves a staged upload into an entity's media collection."""

    @abstractmethod
    async def move_temp_to_media(
        self, folder: str, collection_name: str, entity: MediaOwner
    ) -> bool:
        """Move the file staged in ``folder`` to ``entity``'s collection.

        Returns:
            True if a file was moved, False if the folder held nothing usable
        """
        pass


class IPasswordResetBroker(ABC):
    """Sends password reset links for an actor table."""

    @abstractmethod
    async def send_reset_link(self, email: str) -> bool:
        """Dispatch the reset link. Returns True when the broker accepted it."""
        pass
