"""D-Bus service for GUI communication.

D-Bus methods use PascalCase per D-Bus convention, and type signatures
like "as" and "(ss)" are D-Bus protocol types, not Python syntax.
Scan and cleanup run on worker threads; their state changes are
forwarded to the event loop before being emitted as signals.
"""

from __future__ import annotations

import asyncio
import json
import logging

from dbus_next.aio import MessageBus
from dbus_next.service import ServiceInterface, method, signal
from dbus_next import BusType

from reclaim.core.engine import ScanSnapshot
from reclaim.core.executor import CleanupSnapshot
from reclaim.core.session import CleanupSession
from reclaim.models.item import Category
from reclaim.models.report import CleanupRunReport

log = logging.getLogger(__name__)

_BUS_NAME = "io.github.reclaim"
_OBJECT_PATH = "/io/github/reclaim"
_INTERFACE = "io.github.reclaim.Manager"


# noinspection PyPep8Naming
class ReclaimDBusService(ServiceInterface):
    """D-Bus service interface for Reclaim."""

    def __init__(self, session: CleanupSession | None = None, loop: asyncio.AbstractEventLoop | None = None) -> None:
        super().__init__(_INTERFACE)
        self.session = session or CleanupSession()
        self._loop = loop or asyncio.get_event_loop()
        self.session.orchestrator.subscribe(self._on_scan_state)
        self.session.executor.subscribe(self._on_cleanup_state)

    # ── thread bridging ─────────────────────────────────────────────────

    def _on_scan_state(self, snapshot: ScanSnapshot) -> None:
        self._loop.call_soon_threadsafe(self.ScanProgress, snapshot.is_scanning, snapshot.progress, snapshot.item_count)

    def _on_cleanup_state(self, snapshot: CleanupSnapshot) -> None:
        self._loop.call_soon_threadsafe(
            self.CleanupProgress, snapshot.is_running, snapshot.progress, snapshot.status, snapshot.cleaned_bytes
        )

    def _on_cleanup_finished(self, report: CleanupRunReport) -> None:
        self._loop.call_soon_threadsafe(self.CleanupFinished, json.dumps(report.to_dict()))

    # ── scanning ────────────────────────────────────────────────────────

    @method()
    def StartScan(self) -> "b":  # type: ignore[override]
        """Start a background scan; False if one is already running."""
        return self.session.start_scan()

    @method()
    def CancelScan(self):  # type: ignore[override]
        self.session.cancel_scan()

    @method()
    def GetItems(self) -> "s":  # type: ignore[override]
        """Current scan results as JSON."""
        return json.dumps([i.to_dict() for i in self.session.items])

    @method()
    def ToggleSelection(self, item_id: "s") -> "b":  # type: ignore[override]
        return self.session.toggle_selection(item_id)

    @method()
    def SelectAllInCategory(self, category: "s", selected: "b") -> "b":  # type: ignore[override]
        try:
            parsed = Category(category)
        except ValueError:
            log.warning("Unknown category requested over D-Bus: %s", category)
            return False
        self.session.select_all_in_category(parsed, selected)
        return True

    @method()
    def SelectAllSafe(self):  # type: ignore[override]
        self.session.select_all_safe()

    # ── cleanup ─────────────────────────────────────────────────────────

    @method()
    def Cleanup(self, create_backup: "b") -> "b":  # type: ignore[override]
        """Start cleaning the current selection; False if one is already running."""
        return self.session.cleanup(create_backup=create_backup, on_finished=self._on_cleanup_finished)

    @method()
    def CancelCleanup(self):  # type: ignore[override]
        self.session.cancel_cleanup()

    @method()
    def EstimatedDuration(self) -> "d":  # type: ignore[override]
        return self.session.estimated_duration()

    # ── history and settings ────────────────────────────────────────────

    @method()
    def GetStats(self, period: "s") -> "s":  # type: ignore[override]
        """Get statistics for a time period."""
        return json.dumps(self.session.stats(period))

    @method()
    def GetHistory(self) -> "s":  # type: ignore[override]
        """Get the run history, newest first."""
        return json.dumps([e.to_dict() for e in self.session.tracker.entries])

    @method()
    def GetSettings(self) -> "s":  # type: ignore[override]
        return json.dumps(self.session.settings.to_dict())

    @method()
    def UpdateSettings(self, changes_json: "s") -> "s":  # type: ignore[override]
        """Apply a JSON object of setting changes; returns the result as JSON."""
        try:
            changes = json.loads(changes_json)
            if not isinstance(changes, dict):
                raise ValueError("expected a JSON object")
            settings = self.session.update_settings(**changes)
        except ValueError as e:
            return json.dumps({"error": str(e)})
        return json.dumps(settings.to_dict())

    # ── signals ─────────────────────────────────────────────────────────

    @signal()
    def ScanProgress(self, is_scanning: bool, progress: float, item_count: int) -> "bdu":  # type: ignore[override]
        return [is_scanning, progress, item_count]

    @signal()
    def CleanupProgress(self, is_running: bool, progress: float, status: str, cleaned_bytes: int) -> "bdst":  # type: ignore[override]
        return [is_running, progress, status, cleaned_bytes]

    @signal()
    def CleanupFinished(self, report_json: str) -> "s":  # type: ignore[override]
        return report_json


async def run_service() -> None:
    """Start the D-Bus service."""
    bus = await MessageBus(bus_type=BusType.SESSION).connect()
    service = ReclaimDBusService(loop=asyncio.get_running_loop())
    bus.export(_OBJECT_PATH, service)
    await bus.request_name(_BUS_NAME)
    log.info("D-Bus service started on %s", _BUS_NAME)
    service.session.auto_scan()
    await bus.wait_for_disconnect()


def start_service() -> None:
    """Entry point to start the D-Bus service."""
    asyncio.run(run_service())
