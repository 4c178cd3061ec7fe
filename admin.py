"""
Admin editor.

One `AdminEditor` per operator session. It owns the session state
(`Uninitialized -> Ready`), the toast history and one `CollectionEditor` per
collection. Each collection editor is a small state machine:

    LIST --open_add/open_edit--> EDITING --submit (ok) / cancel--> LIST

A failed submit leaves the editor in EDITING with the operator's values kept
so the save can be retried. Deletes go through a confirmation callback.
"""
import logging
import threading
import time
import uuid
from collections import deque
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from pymongo import ASCENDING, DESCENDING

from auth import AuthGate, User
from database import ContentStore
from errors import AuthError, EditorStateError, NotFoundError, StoreUnavailableError, ValidationError
from formatting import (
    EN_DASH,
    escape_html,
    format_competition_range,
    format_date_short,
    format_time,
    is_past,
    sort_by_order,
)
from schemas import COMPETITIONS, FLYERS, NEWS, SCHEDULE, SPONSORS, TIMESTAMPED, ScheduleSlot

logger = logging.getLogger(__name__)

TOAST_HISTORY = 20


class EditorState(str, Enum):
    LIST = "list"
    EDITING = "editing"


class SessionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"


@dataclass
class Toast:
    message: str
    kind: str = "success"


@dataclass(frozen=True)
class Binding:
    event: str
    action: str
    target_id: str


@dataclass
class ListView:
    rows: List[Dict[str, Any]] = field(default_factory=list)
    html: str = ""
    bindings: List[Binding] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"rows": self.rows, "html": self.html, "bindings": [asdict(b) for b in self.bindings]}


def _status(flag: bool, yes: str, no: str) -> str:
    return yes if flag else no


class CollectionEditor:
    """List/edit/delete flow for one store-native collection."""

    collection: str = ""
    label: str = "Item"
    empty_message: str = "Nothing here yet."
    required: tuple = ()
    defaults: Dict[str, Any] = {}
    order_by: Optional[list] = None

    def __init__(self, store: ContentStore, notify: Callable[[str, str], None]):
        self.store = store
        self.notify = notify
        self.state = EditorState.LIST
        self.form: Optional[Dict[str, Any]] = None
        self.editing_id: Optional[str] = None
        self.records: List[Any] = []
        self.loaded = False
        self.view = ListView()

    # List view

    def fetch(self) -> List[Any]:
        return self.store.get(self.collection, order_by=self.order_by)

    def load(self) -> ListView:
        self.records = self.fetch()
        self.loaded = True
        self.view = self.render_list()
        return self.view

    def listed(self) -> List[Any]:
        return list(self.records)

    def row(self, record) -> Dict[str, Any]:
        return record.to_public()

    def row_html(self, record) -> str:
        raise NotImplementedError

    def render_list(self) -> ListView:
        records = self.listed()
        if not records:
            return ListView(html=f'<div class="empty-state"><p>{escape_html(self.empty_message)}</p></div>')
        bindings = []
        for record in records:
            bindings.append(Binding("click", "edit", record.id))
            bindings.append(Binding("click", "delete", record.id))
        return ListView(
            rows=[self.row(r) for r in records],
            html="".join(self.row_html(r) for r in records),
            bindings=bindings,
        )

    # Edit modal

    def blank_form(self) -> Dict[str, Any]:
        return dict(self.defaults)

    def record_form(self, record) -> Dict[str, Any]:
        form = record.to_public()
        form.pop("id", None)
        if self.collection in TIMESTAMPED:
            form.pop("date", None)
        return form

    def form_model(self):
        return self.store.model_for(self.collection)

    def find(self, doc_id: str):
        return self.store.get(self.collection, doc_id)

    def open_add(self) -> Dict[str, Any]:
        self.form = self.blank_form()
        self.editing_id = None
        self.state = EditorState.EDITING
        return self.form

    def open_edit(self, doc_id: str) -> Dict[str, Any]:
        record = self.find(doc_id)
        self.form = self.record_form(record)
        self.editing_id = doc_id
        self.state = EditorState.EDITING
        return self.form

    def cancel(self) -> None:
        self.form = None
        self.editing_id = None
        self.state = EditorState.LIST

    def check_required(self, form: Dict[str, Any]) -> None:
        missing = [name for name in self.required if not str(form.get(name) or "").strip()]
        if missing:
            raise ValidationError(self.collection, [f"{name}: required" for name in missing])

    def write(self, form: Dict[str, Any]) -> str:
        if self.editing_id:
            self.store.update(self.collection, self.editing_id, form)
            return self.editing_id
        return self.store.put(self.collection, form)

    def submit(self, values: Dict[str, Any]) -> str:
        if self.state is not EditorState.EDITING:
            raise EditorStateError(f"No {self.label.lower()} form is open")
        form = dict(self.form or {})
        form.update(ContentStore.wire_names(self.form_model(), values))
        form.pop("id", None)
        self.form = form
        self.check_required(form)
        try:
            doc_id = self.write(form)
        except (StoreUnavailableError, ValidationError) as e:
            logger.error(f"Saving {self.collection} failed: {e}")
            self.notify(f"Error saving {self.label.lower()}: {e}", "error")
            raise
        self.cancel()
        self.reload()
        self.notify(f"{self.label} saved!", "success")
        return doc_id

    # Delete

    @property
    def delete_prompt(self) -> str:
        return f"Delete this {self.label.lower()}? This cannot be undone."

    def remove(self, doc_id: str) -> None:
        self.store.delete(self.collection, doc_id)

    def delete(self, doc_id: str, confirm: Callable[[str], bool]) -> bool:
        if not confirm(self.delete_prompt):
            return False
        try:
            self.remove(doc_id)
        except StoreUnavailableError as e:
            logger.error(f"Deleting {self.collection}/{doc_id} failed: {e}")
            self.notify(f"Error deleting {self.label.lower()}: {e}", "error")
            raise
        self.reload()
        self.notify(f"{self.label} deleted.", "success")
        return True

    def reload(self) -> None:
        try:
            self.load()
        except StoreUnavailableError as e:
            self.notify(f"Could not refresh {self.collection}: {e}", "error")


class ScheduleEditor(CollectionEditor):
    """Practice slots, held as one array in the `schedule/main` document.

    The editor keeps the slot list as its working copy and rewrites the whole
    array on every save or delete. There is no conflict check; the last
    writer wins.
    """

    collection = SCHEDULE
    label = "Practice"
    empty_message = "No practice slots yet."
    required = ("day", "startTime", "endTime", "location")

    def fetch(self) -> List[ScheduleSlot]:
        try:
            return list(self.store.get(SCHEDULE).slots)
        except NotFoundError:
            return []

    def listed(self) -> List[ScheduleSlot]:
        return sort_by_order(self.records)

    def row_html(self, slot) -> str:
        title = f'<span class="slot-title">{escape_html(slot.title)}</span>' if slot.title else ""
        badge = '<div class="slot-badge">Featured</div>' if slot.featured else ""
        return (
            f'<div class="slot-row" data-id="{escape_html(slot.id)}">'
            f'<div class="slot-day">{escape_html(slot.day)}</div>'
            f'<div class="slot-time">{title}{escape_html(format_time(slot.start_time))} {EN_DASH} '
            f'{escape_html(format_time(slot.end_time))}</div>'
            f'<div class="slot-loc">{escape_html(slot.location)}</div>'
            f"{badge}</div>"
        )

    def blank_form(self) -> Dict[str, Any]:
        return {
            "title": "",
            "day": "Tuesday",
            "startTime": "20:00",
            "endTime": "21:00",
            "location": "NA Senior High School",
            "order": len(self.records) + 1,
            "featured": False,
        }

    def form_model(self):
        return ScheduleSlot

    def find(self, doc_id: str) -> ScheduleSlot:
        for slot in self.records:
            if slot.id == doc_id:
                return slot
        raise NotFoundError(SCHEDULE, doc_id)

    def record_form(self, slot) -> Dict[str, Any]:
        form = slot.to_public()
        form.pop("id", None)
        return form

    def _save_slots(self, slots: List[Dict[str, Any]]) -> None:
        self.store.put(SCHEDULE, {"slots": slots})

    def write(self, form: Dict[str, Any]) -> str:
        if not self.loaded:
            # never rewrite the array from a working copy that was never read
            self.records = self.fetch()
            self.loaded = True
        slot_id = self.editing_id or str(uuid.uuid4())
        updated = dict(form, id=slot_id)
        slots = [s.to_public() for s in self.records]
        for i, existing in enumerate(slots):
            if existing["id"] == slot_id:
                slots[i] = updated
                break
        else:
            slots.append(updated)
        self._save_slots(slots)
        return slot_id

    def remove(self, doc_id: str) -> None:
        self.find(doc_id)
        self._save_slots([s.to_public() for s in self.records if s.id != doc_id])


class NewsEditor(CollectionEditor):
    collection = NEWS
    label = "Post"
    empty_message = 'No posts yet. Click "+ New Post" to get started.'
    required = ("title", "content")
    defaults = {"title": "", "content": "", "imageUrl": "", "published": True}
    order_by = [("date", DESCENDING)]

    def row(self, post) -> Dict[str, Any]:
        row = post.to_public()
        row["status"] = _status(post.published, "Published", "Draft")
        return row

    def row_html(self, post) -> str:
        image = f'<img src="{escape_html(post.image_url)}" alt="" />' if post.image_url else ""
        status = _status(post.published, "Published", "Draft")
        return (
            f'<div class="news-row" data-id="{escape_html(post.id)}">'
            f'<div class="news-row-img">{image}</div>'
            f'<div class="news-row-body"><div class="news-row-title">{escape_html(post.title)}</div>'
            f'<div class="news-row-date">{escape_html(format_date_short(post.date))}</div></div>'
            f'<span class="news-row-status status-{status.lower()}">{status}</span>'
            f"</div>"
        )


class FlyerEditor(CollectionEditor):
    collection = FLYERS
    label = "Flyer"
    empty_message = 'No flyers yet. Click "+ Add Flyer" to get started.'
    required = ("title", "imageUrl")
    defaults = {"title": "", "description": "", "imageUrl": "", "published": True}
    order_by = [("date", DESCENDING)]

    def row(self, flyer) -> Dict[str, Any]:
        row = flyer.to_public()
        row["status"] = _status(flyer.published, "Published", "Draft")
        return row

    def row_html(self, flyer) -> str:
        status = _status(flyer.published, "Published", "Draft")
        return (
            f'<div class="flyer-admin-card" data-id="{escape_html(flyer.id)}">'
            f'<img src="{escape_html(flyer.image_url)}" alt="{escape_html(flyer.title)}" loading="lazy" />'
            f'<div class="flyer-admin-footer"><span class="flyer-admin-title">{escape_html(flyer.title)}</span>'
            f'<span class="news-row-status status-{status.lower()}">{status}</span></div>'
            f"</div>"
        )


class CompetitionEditor(CollectionEditor):
    collection = COMPETITIONS
    label = "Event"
    empty_message = 'No events yet. Click "+ Add Event" to get started.'
    required = ("name", "date")
    defaults = {
        "name": "",
        "date": "",
        "endDate": "",
        "location": "",
        "divisions": "",
        "notes": "",
        "link": "",
        "published": True,
        "travel": False,
    }
    order_by = [("date", ASCENDING)]

    def __init__(self, store: ContentStore, notify: Callable[[str, str], None],
                 today: Optional[Callable[[], date]] = None):
        super().__init__(store, notify)
        self.today = today or date.today

    def row(self, event) -> Dict[str, Any]:
        row = event.to_public()
        row["status"] = _status(is_past(event, self.today()), "Past", "Upcoming")
        row["dates"] = format_competition_range(event.date, event.end_date)
        return row

    def row_html(self, event) -> str:
        past = is_past(event, self.today())
        status = _status(past, "Past", "Upcoming")
        return (
            f'<div class="slot-row{" slot-row--past" if past else ""}" data-id="{escape_html(event.id)}">'
            f'<div class="slot-day">{escape_html(format_competition_range(event.date, event.end_date))}</div>'
            f'<div class="slot-time">{escape_html(event.name)}</div>'
            f'<div class="slot-loc">{escape_html(event.location or "—")}</div>'
            f'<span class="news-row-status status-{status.lower()}">{status}</span>'
            f"</div>"
        )


class SponsorEditor(CollectionEditor):
    collection = SPONSORS
    label = "Sponsor"
    empty_message = 'No sponsors yet. Click "+ Add Sponsor" to get started.'
    required = ("name",)

    def blank_form(self) -> Dict[str, Any]:
        return {"name": "", "logoUrl": "", "website": "", "order": len(self.records) + 1}

    def listed(self) -> List[Any]:
        return sort_by_order(self.records)

    def row_html(self, sponsor) -> str:
        logo = f'<img src="{escape_html(sponsor.logo_url)}" alt="" />' if sponsor.logo_url else ""
        return (
            f'<div class="slot-row" data-id="{escape_html(sponsor.id)}">'
            f'<div class="news-row-img">{logo}</div>'
            f'<div class="slot-time">{escape_html(sponsor.name)}</div>'
            f'<div class="slot-loc">{escape_html(sponsor.website or "—")}</div>'
            f"</div>"
        )


class AdminEditor:
    """State of one operator session."""

    def __init__(self, store: ContentStore, authenticator, today: Optional[Callable[[], date]] = None):
        self.store = store
        self.gate = AuthGate(authenticator)
        self.state = SessionState.UNINITIALIZED
        self.toasts = deque(maxlen=TOAST_HISTORY)
        self.editors: Dict[str, CollectionEditor] = {
            SCHEDULE: ScheduleEditor(store, self.toast),
            NEWS: NewsEditor(store, self.toast),
            FLYERS: FlyerEditor(store, self.toast),
            COMPETITIONS: CompetitionEditor(store, self.toast, today=today),
            SPONSORS: SponsorEditor(store, self.toast),
        }
        self.last_seen = time.monotonic()
        self._busy = threading.Lock()
        self.gate.subscribe(self._on_user_changed)

    def _on_user_changed(self, user: Optional[User]) -> None:
        if user is not None:
            self.initialize()

    def initialize(self) -> bool:
        """First load of every collection; runs once per session."""
        if self.state is SessionState.READY:
            return False
        self.state = SessionState.READY
        for name, editor in self.editors.items():
            try:
                editor.load()
            except (StoreUnavailableError, ValidationError) as e:
                logger.warning(f"Initial load of {name} failed: {e}")
                self.toast(f"Could not load {name}: {e}", "error")
        return True

    def touch(self) -> None:
        self.last_seen = time.monotonic()

    def expired(self, ttl: float, now: Optional[float] = None) -> bool:
        now = time.monotonic() if now is None else now
        return now - self.last_seen > ttl

    @property
    def user(self) -> Optional[User]:
        return self.gate.current_user

    def sign_in(self, email: str, password: str) -> User:
        return self.gate.sign_in(email, password)

    def sign_out(self) -> None:
        self.gate.sign_out()

    def toast(self, message: str, kind: str = "success") -> None:
        self.toasts.append(Toast(message, kind))
        if kind == "error":
            logger.warning(f"[admin] {message}")
        else:
            logger.info(f"[admin] {message}")

    def editor(self, collection: str) -> CollectionEditor:
        if not self.gate.signed_in:
            raise AuthError(AuthError.OTHER, "SIGNED_OUT")
        try:
            return self.editors[collection]
        except KeyError:
            raise NotFoundError(collection) from None

    @contextmanager
    def busy(self):
        """Reject a second request while one is still in flight."""
        if not self._busy.acquire(blocking=False):
            raise EditorStateError("Another request is still in progress")
        try:
            yield
        finally:
            self._busy.release()
