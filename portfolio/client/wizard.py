"""
AI content-import wizard.

    input -> review -> details -> complete
             review -> input, details -> review

Pasted text goes to process-content; the extracted entries are edited in
review, get photos attached in details, and are then created one by one
through manage-projects. Entries are keyed by a synthetic id so removing
one never shifts another entry's dates, files or settings.

A transition called from any other step is a no-op that returns False.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Callable, Iterable

from portfolio.client.files import DEFAULT_MAX_BYTES, LocalFile, validate_files
from portfolio.client.http import PortfolioClient, PortfolioClientError
from portfolio.config import CATEGORIES
from portfolio.logging_config import log_event

logger = logging.getLogger(__name__)

ENTRY_FIELDS = ("title", "description", "writeup", "tags", "impact")


class Step(str, Enum):
    INPUT = "input"
    REVIEW = "review"
    DETAILS = "details"
    COMPLETE = "complete"


@dataclass
class Notice:
    level: str  # success | error | info
    message: str


@dataclass
class WizardEntry:
    key: str
    extracted: dict[str, Any]
    category: str
    start_date: str | None
    end_date: str | None
    is_work: bool
    is_featured: bool = False
    show_writeup: bool = False
    files: list[LocalFile] = field(default_factory=list)

    @property
    def title(self) -> str:
        return self.extracted.get("title") or ""


class ImportWizard:
    def __init__(
        self,
        client: PortfolioClient,
        *,
        default_is_work: bool = False,
        bucket: str = "project-files",
        max_file_bytes: int = DEFAULT_MAX_BYTES,
        close_delay: float = 2.0,
        today: Callable[[], date] = date.today,
        clock: Callable[[], float] = time.monotonic,
        on_success: Callable[[], None] | None = None,
        on_close: Callable[[], None] | None = None,
    ) -> None:
        self.client = client
        self.default_is_work = default_is_work
        self.bucket = bucket
        self.max_file_bytes = max_file_bytes
        self.close_delay = close_delay
        self._today = today
        self._clock = clock
        self.on_success = on_success
        self.on_close = on_close
        self.reset()

    def reset(self) -> None:
        self.step = Step.INPUT
        self.content = ""
        self.entries: list[WizardEntry] = []
        self.index = 0
        self.processing = False
        self.saving = False
        self.notices: list[Notice] = []
        self._persisted: set[str] = set()
        self._close_at: float | None = None

    def _notify(self, level: str, message: str) -> None:
        self.notices.append(Notice(level, message))

    def pop_notices(self) -> list[Notice]:
        notices, self.notices = self.notices, []
        return notices

    def _today_iso(self) -> str:
        return self._today().isoformat()

    def entry(self, key: str) -> WizardEntry:
        for e in self.entries:
            if e.key == key:
                return e
        raise KeyError(key)

    @property
    def current(self) -> WizardEntry | None:
        if self.step != Step.DETAILS or not self.entries:
            return None
        return self.entries[self.index]

    @property
    def entry_count_label(self) -> str:
        return f"{len(self.entries)} project(s)"

    # ------------------------------------------------------------------
    # input
    # ------------------------------------------------------------------

    def process(self, content: str | None = None) -> bool:
        if self.step != Step.INPUT:
            return False
        if content is not None:
            self.content = content
        if not self.content.strip():
            self._notify("error", "Please enter content to process")
            return False

        self.processing = True
        try:
            extracted = self.client.process_content(self.content)
        except PortfolioClientError as exc:
            logger.warning("process-content failed: %s", exc.message)
            self._notify("error", "Failed to process content. Please try again.")
            return False
        finally:
            self.processing = False

        self.entries = [self._seed(item) for item in extracted if isinstance(item, dict)]
        self._persisted.clear()
        self.index = 0
        self.step = Step.REVIEW
        self._notify("success", f"Processed {len(self.entries)} project(s)")
        return True

    def _seed(self, item: dict[str, Any]) -> WizardEntry:
        return WizardEntry(
            key=uuid.uuid4().hex,
            extracted=dict(item),
            category=item.get("category") or CATEGORIES[0],
            start_date=item.get("start_date") or self._today_iso(),
            end_date=item.get("end_date") or None,
            is_work=self.default_is_work,
        )

    # ------------------------------------------------------------------
    # review
    # ------------------------------------------------------------------

    def remove_entry(self, key: str) -> None:
        self.entries = [e for e in self.entries if e.key != key]
        self._persisted.discard(key)
        if self.index >= len(self.entries):
            self.index = max(len(self.entries) - 1, 0)

    def update_entry(self, key: str, **changes: Any) -> WizardEntry:
        entry = self.entry(key)
        allowed = {"category", "start_date", "end_date", "is_work", "is_featured"}
        unknown = set(changes) - allowed
        if unknown:
            raise ValueError(f"Cannot edit {', '.join(sorted(unknown))}")
        for name, value in changes.items():
            setattr(entry, name, value)
        return entry

    def toggle_writeup(self, key: str) -> bool:
        entry = self.entry(key)
        entry.show_writeup = not entry.show_writeup
        return entry.show_writeup

    def back_to_input(self) -> bool:
        if self.step != Step.REVIEW:
            return False
        self.step = Step.INPUT
        return True

    def to_details(self) -> bool:
        if self.step != Step.REVIEW or not self.entries:
            return False
        self.index = 0
        self.step = Step.DETAILS
        return True

    # ------------------------------------------------------------------
    # details
    # ------------------------------------------------------------------

    def add_files(self, key: str, files: Iterable[LocalFile]) -> list[LocalFile]:
        accepted, rejected = validate_files(files, max_bytes=self.max_file_bytes)
        for message in rejected:
            self._notify("error", message)
        self.entry(key).files.extend(accepted)
        return accepted

    def remove_file(self, key: str, position: int) -> None:
        files = self.entry(key).files
        if 0 <= position < len(files):
            del files[position]

    def next(self) -> bool:
        """Advance to the next entry, or save everything after the last one."""
        if self.step != Step.DETAILS:
            return False
        if self.index < len(self.entries) - 1:
            self.index += 1
            return True
        return self.save_all()

    def skip_photo(self) -> bool:
        current = self.current
        if current is None:
            return False
        current.files = []
        return self.next()

    def back_to_review(self) -> bool:
        if self.step != Step.DETAILS:
            return False
        self.step = Step.REVIEW
        return True

    # ------------------------------------------------------------------
    # save-all / complete
    # ------------------------------------------------------------------

    def _upload(self, files: list[LocalFile]) -> list[str]:
        urls: list[str] = []
        for f in files:
            try:
                urls.append(self.client.upload_file(self.bucket, f.name, f.data, f.content_type))
            except PortfolioClientError as exc:
                logger.warning("Upload of %s failed: %s", f.name, exc.message)
                self._notify("error", f"Failed to upload {f.name}")
        return urls

    def build_payload(self, entry: WizardEntry, image_urls: list[str]) -> dict[str, Any]:
        extracted = entry.extracted
        data = {name: extracted.get(name) for name in ENTRY_FIELDS if extracted.get(name) is not None}
        data.update(
            category=entry.category,
            start_date=entry.start_date or extracted.get("start_date") or self._today_iso(),
            end_date=entry.end_date or extracted.get("end_date") or None,
            is_featured=entry.is_featured,
            is_work=entry.is_work,
            image_urls=image_urls,
        )
        return data

    def save_all(self) -> bool:
        if self.step != Step.DETAILS or not self.entries:
            return False
        self.saving = True
        try:
            for entry in self.entries:
                if entry.key in self._persisted:
                    continue
                urls = self._upload(entry.files) if entry.files else []
                try:
                    self.client.manage_projects("create", self.build_payload(entry, urls))
                except PortfolioClientError as exc:
                    logger.warning("Create failed for %r: %s", entry.title, exc.message)
                    self._notify("error", "Failed to save projects")
                    self.step = Step.DETAILS
                    return False
                self._persisted.add(entry.key)
        finally:
            self.saving = False

        work = sum(1 for e in self.entries if e.is_work)
        log_event("import_saved", total=len(self.entries), work=work)
        self._notify("success", self.summary())
        self.step = Step.COMPLETE
        self._close_at = self._clock() + self.close_delay
        if self.on_success:
            self.on_success()
        return True

    def summary(self) -> str:
        work = sum(1 for e in self.entries if e.is_work)
        foundations = len(self.entries) - work
        if work and foundations:
            return f"Saved {work} to Work and {foundations} to Foundations"
        if work:
            return f"Saved {work} project(s) to Work"
        return f"Saved {foundations} project(s) to Foundations"

    def poll(self) -> bool:
        """Close and reset once the completion delay has passed. Returns True on close."""
        if self._close_at is None or self._clock() < self._close_at:
            return False
        self.reset()
        if self.on_close:
            self.on_close()
        return True
