"""Storage interfaces used by the OAuth flows.

The production deployment backs these with a hosted relational database and
object storage; the flows only depend on the operations below, so tests and
local runs can plug in any implementation.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Generic, List, Optional, TypeVar

from tunebacker.core import BackupSnapshot, LinkedAccount, NonceRecord

R = TypeVar("R", bound=NonceRecord)


class NonceStore(ABC, Generic[R]):
    @abstractmethod
    def put(self, record: R) -> None:
        """Insert or replace a record keyed by its nonce."""
        raise NotImplementedError

    @abstractmethod
    def get(self, nonce: str) -> Optional[R]:
        raise NotImplementedError

    @abstractmethod
    def delete(self, nonce: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def consume(self, nonce: str) -> Optional[R]:
        """
        Remove and return the record in one step.

        Two callers racing on the same nonce: exactly one gets the record,
        the other gets None.
        """
        raise NotImplementedError

    @abstractmethod
    def purge_expired(self, now: datetime) -> List[R]:
        """Drop records whose expiry has passed and return them."""
        raise NotImplementedError


class BlobStore(ABC):
    @abstractmethod
    def upload(
        self, path: str, data: bytes, content_type: str = "application/json"
    ) -> None:
        raise NotImplementedError

    @abstractmethod
    def download(self, path: str) -> bytes:
        """Raises NotFoundError when nothing is stored at `path`."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, path: str) -> None:
        raise NotImplementedError


class LinkedAccountStore(ABC):
    @abstractmethod
    def upsert(self, account: LinkedAccount) -> None:
        """Insert or replace the link for `account.app_user_id`."""
        raise NotImplementedError

    @abstractmethod
    def get(self, app_user_id: str) -> Optional[LinkedAccount]:
        raise NotImplementedError

    @abstractmethod
    def find_by_spotify_user(self, spotify_user_id: str) -> Optional[LinkedAccount]:
        raise NotImplementedError

    @abstractmethod
    def delete(self, app_user_id: str) -> None:
        raise NotImplementedError


class BackupStore(ABC):
    @abstractmethod
    def get(self, user_id: str, playlist_id: str) -> Optional[BackupSnapshot]:
        raise NotImplementedError

    @abstractmethod
    def save(self, snapshot: BackupSnapshot) -> None:
        raise NotImplementedError

    @abstractmethod
    def deactivate_all(self, user_id: str) -> int:
        """Mark every tracker of `user_id` inactive; return how many changed."""
        raise NotImplementedError
