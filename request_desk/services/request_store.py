"""
Request store and lifecycle engine.

Owns the canonical, most-recent-first collection of requests and the
active-request mirror. Requests are frozen models: every mutation builds
an updated copy and swaps it in through ``_update``, which also patches the
active mirror under the same lock.

Lifecycle: open --close--> closed. Closed is terminal and rejects new
messages.
"""

from __future__ import annotations

import json
import shutil
import tempfile
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, List, Optional

from ..models.principal import Principal, Role
from ..models.request import Category, Message, Request, RequestStatus
from ..utils.exceptions import CategoryNotFound, ConfigError, RequestDeskError, RequestNotFound
from ..utils.ids import new_id
from ..utils.latency import simulate_latency
from ..utils.logger import get_logger
from .category_catalog import CategoryCatalog

logger = get_logger(__name__)

SLA_DAYS = 30


def _now() -> datetime:
    return datetime.now(timezone.utc)


def is_visible(request: Request, principal: Optional[Principal]) -> bool:
    """Role-scoped visibility predicate"""
    if principal is None:
        return False
    if principal.role == Role.RESIDENT:
        return request.resident_id == principal.id
    if principal.role == Role.EMPLOYEE:
        return request.category_id in principal.assigned_categories
    if principal.role == Role.ADMIN:
        return True
    return False


class RequestStore:
    """
    One canonical collection per process.

    ``error`` is the message of the store's last failed command. It is
    shared by every caller of this instance, so it is only meaningful when
    a single consumer embeds the store. Concurrent callers (the HTTP
    adapter) take the failure from the raised exception instead and never
    read ``error``.
    """

    def __init__(
        self,
        catalog: CategoryCatalog,
        sla_days: int = SLA_DAYS,
        latency_seconds: float = 1.0,
    ):
        self.catalog = catalog
        self.sla_days = sla_days
        self.latency_seconds = latency_seconds
        self.snapshot_path: Optional[Path] = None
        self.error: Optional[str] = None

        self._requests: List[Request] = []
        self._active: Optional[Request] = None
        self._lock = threading.RLock()

    # lifecycle

    def init(self, snapshot_path: Optional[Path] = None) -> None:
        """Load the persisted collection, if any."""
        self.snapshot_path = Path(snapshot_path) if snapshot_path else None
        if self.snapshot_path is None or not self.snapshot_path.exists():
            return
        try:
            with open(self.snapshot_path, "r", encoding="utf-8") as f:
                raw = json.load(f)
            loaded = [Request(**item) for item in raw.get("requests", [])]
        except (json.JSONDecodeError, OSError, ValueError) as e:
            raise ConfigError(f"Failed to load requests from {self.snapshot_path}: {str(e)}")
        with self._lock:
            self._requests = loaded
            self._active = None
        logger.info("Loaded requests", path=str(self.snapshot_path), count=len(loaded))

    def teardown(self) -> None:
        """Persist the collection (when a snapshot path is set) and drop the selection."""
        with self._lock:
            requests = list(self._requests)
            self._active = None
        if self.snapshot_path is not None:
            self._atomic_write(self.snapshot_path, {"requests": [r.model_dump(mode="json") for r in requests]})
            logger.info("Saved requests", path=str(self.snapshot_path), count=len(requests))

    # queries

    def all_requests(self) -> List[Request]:
        with self._lock:
            return list(self._requests)

    def visible_requests(self, principal: Optional[Principal]) -> List[Request]:
        with self._lock:
            return [r for r in self._requests if is_visible(r, principal)]

    def categories(self) -> List[Category]:
        return self.catalog.categories()

    def active_request(self) -> Optional[Request]:
        return self._active

    def get_request(self, request_id: str, strict: bool = False) -> Optional[Request]:
        with self._lock:
            found = self._find(request_id)
            request = self._requests[found] if found is not None else None
        if request is None and strict:
            raise RequestNotFound(request_id)
        return request

    def set_active_request(self, request: Optional[Request]) -> None:
        """Select a request; a known id is resolved to its canonical entry."""
        with self._lock:
            if request is None:
                self._active = None
                return
            found = self._find(request.id)
            self._active = self._requests[found] if found is not None else request

    # commands

    async def create_request(
        self,
        principal: Optional[Principal],
        category_id: str,
        subject: str,
        initial_message: str,
        timeout: Optional[float] = None,
    ) -> Optional[Request]:
        if principal is None:
            return None
        self.error = None
        try:
            await simulate_latency(self.latency_seconds, timeout)
            category = self.catalog.get(category_id)
            if category is None:
                raise CategoryNotFound(category_id)

            now = _now()
            request_id = new_id("req")
            seed = Message(
                id=new_id("msg"),
                request_id=request_id,
                sender_id=principal.id,
                sender_name=principal.full_name,
                sender_role=principal.role,
                content=initial_message,
                timestamp=now,
            )
            request = Request(
                id=request_id,
                resident_id=principal.id,
                resident_name=principal.full_name,
                category_id=category.id,
                category_name=category.name,
                subject=subject,
                status=RequestStatus.OPEN,
                created_at=now,
                updated_at=now,
                deadline=now + timedelta(days=self.sla_days),
                messages=(seed,),
            )
            with self._lock:
                self._requests.insert(0, request)
        except RequestDeskError as e:
            self.error = str(e)
            logger.warning("Request creation failed", category_id=category_id, error=self.error)
            raise
        except Exception as e:
            self.error = str(e) or e.__class__.__name__
            raise

        logger.info(
            "Request created",
            request_id=request.id,
            resident_id=principal.id,
            category_id=category.id,
        )
        return request

    def send_message(self, principal: Optional[Principal], request_id: str, content: str) -> Optional[Message]:
        """
        Append a message. Returns None without changing anything when there is
        no principal, the id does not resolve, or the request is closed.
        """
        if principal is None:
            return None

        appended: List[Message] = []

        def append(current: Request) -> Optional[Request]:
            if current.is_closed:
                logger.warning("Message rejected on closed request", request_id=request_id, sender_id=principal.id)
                return None
            now = _now()
            last = current.messages[-1].timestamp
            message = Message(
                id=new_id("msg"),
                request_id=current.id,
                sender_id=principal.id,
                sender_name=principal.full_name,
                sender_role=principal.role,
                content=content,
                timestamp=max(now, last),
                is_read=False,
            )
            appended.append(message)
            return current.model_copy(
                update={
                    "messages": current.messages + (message,),
                    "updated_at": max(now, current.updated_at),
                }
            )

        if self._update(request_id, append) is None or not appended:
            return None
        logger.info("Message sent", request_id=request_id, sender_id=principal.id, role=principal.role.value)
        return appended[0]

    async def close_request(self, request_id: str, timeout: Optional[float] = None) -> Optional[Request]:
        """Close a request. Re-closing changes nothing, not even updated_at."""
        self.error = None
        try:
            await simulate_latency(self.latency_seconds, timeout)
        except Exception as e:
            self.error = str(e) or e.__class__.__name__
            raise

        def close(current: Request) -> Request:
            if current.is_closed:
                return current
            return current.model_copy(
                update={"status": RequestStatus.CLOSED, "updated_at": max(_now(), current.updated_at)}
            )

        closed = self._update(request_id, close)
        if closed is not None:
            logger.info("Request closed", request_id=request_id)
        return closed

    def mark_read(self, principal: Optional[Principal], request_id: str) -> Optional[Request]:
        """Mark every message not authored by ``principal`` as read."""
        if principal is None:
            return None

        def mark(current: Request) -> Request:
            if not any(not m.is_read and m.sender_id != principal.id for m in current.messages):
                return current
            messages = tuple(
                m.model_copy(update={"is_read": True}) if m.sender_id != principal.id else m
                for m in current.messages
            )
            return current.model_copy(update={"messages": messages})

        return self._update(request_id, mark)

    # internals

    def _find(self, request_id: str) -> Optional[int]:
        return next((i for i, r in enumerate(self._requests) if r.id == request_id), None)

    def _update(self, request_id: str, mutate: Callable[[Request], Optional[Request]]) -> Optional[Request]:
        """
        The single mutation path: replace the canonical entry and patch the
        active mirror atomically. ``mutate`` returns None to reject, or the
        same object to signal "no change".
        """
        with self._lock:
            index = self._find(request_id)
            if index is None:
                return None
            current = self._requests[index]
            updated = mutate(current)
            if updated is None or updated is current:
                return updated
            self._requests[index] = updated
            if self._active is not None and self._active.id == request_id:
                self._active = updated
            return updated

    def _atomic_write(self, path: Path, payload: dict) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            mode="w", dir=str(path.parent), delete=False, encoding="utf-8"
        ) as tf:
            json.dump(payload, tf, indent=2, ensure_ascii=False)
            temp_path = Path(tf.name)
        try:
            shutil.move(str(temp_path), str(path))
        except Exception as e:
            if temp_path.exists():
                temp_path.unlink()
            raise ConfigError(f"Failed to save requests to {path}: {str(e)}")
