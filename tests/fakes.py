"""In-memory stand-ins for the email relay and object storage."""

import re

from promptmart.core.exceptions import StorageError
from promptmart.services.notifications import NotificationError

_CODE_RE = re.compile(r"Your OTP is: (\d+)")


class FakeNotifier:
    """Records outgoing mail; set ``fail = True`` to simulate a provider outage."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str]] = []
        self.fail = False

    async def deliver(self, recipient: str, subject: str, body: str) -> None:
        if self.fail:
            raise NotificationError("relay unavailable")
        self.sent.append((recipient, subject, body))

    def last_code(self, recipient: str) -> str:
        for to, _subject, body in reversed(self.sent):
            if to == recipient:
                return _CODE_RE.search(body).group(1)
        raise AssertionError(f"No OTP sent to {recipient}")


class FakeObjectStore:
    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.failing_keys: set[str] = set()
        self.deleted: list[str] = []
        self._seq = 0

    async def upload(self, data: bytes, filename: str, folder: str) -> dict:
        self._seq += 1
        key = f"{folder}/{self._seq}_{filename}"
        self.objects[key] = data
        return {"storage_key": key, "url": f"/media/{key}"}

    async def delete(self, storage_key: str) -> None:
        if storage_key in self.failing_keys:
            raise StorageError(f"Could not delete {storage_key}")
        self.objects.pop(storage_key, None)
        self.deleted.append(storage_key)
