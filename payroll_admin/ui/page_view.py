"""Shared shell for the tabs: banner strip, toolbar and the bridge plumbing."""

from __future__ import annotations

import time
from typing import Any, Awaitable, Callable, Dict, Optional

from PySide6.QtCore import QTimer, Signal
from PySide6.QtWidgets import (
    QAbstractItemView, QHBoxLayout, QHeaderView, QLabel, QMessageBox, QPushButton, QTableWidget,
    QVBoxLayout, QWidget
)

from ..core.events import record_events
from ..core.notifications import Banner
from .async_bridge import AsyncBridge

BANNER_STYLES = {
    "success": "background:#e7f6ec; color:#1e6b34; padding:6px; border-radius:4px;",
    "error": "background:#fdecea; color:#8a1c1c; padding:6px; border-radius:4px;",
}


class PageView(QWidget):
    """
    A tab bound to one page model.

    Page state lives on the bridge's loop thread. Actions are submitted with
    ``_run`` (coroutines) or ``bridge.apply`` (plain calls); ``render`` copies
    what the tab shows in ``_capture`` on the loop and ``_paint`` draws it on
    the GUI thread.
    """

    banner_requested = Signal(str, str, float)
    records_kind = "records"

    def __init__(self, bridge: AsyncBridge, page: Any, parent: Optional[QWidget] = None):
        super().__init__(parent)
        self.bridge = bridge
        self.page = page
        self._in_flight = 0

        page.notifier.listeners.append(self._forward_banner)
        self.banner_requested.connect(self._show_banner)

        root = QVBoxLayout(self)
        root.setContentsMargins(8, 8, 8, 8)

        self.banner = QLabel("")
        self.banner.setVisible(False)
        self.banner.setWordWrap(True)
        self._banner_timer = QTimer(self)
        self._banner_timer.setSingleShot(True)
        self._banner_timer.timeout.connect(lambda: self.banner.setVisible(False))
        root.addWidget(self.banner)

        self.toolbar = QHBoxLayout()
        root.addLayout(self.toolbar)

    def _button(self, text: str, slot, toolbar: Optional[QHBoxLayout] = None) -> QPushButton:
        btn = QPushButton(text)
        btn.clicked.connect(slot)
        (toolbar or self.toolbar).addWidget(btn)
        return btn

    @staticmethod
    def _table(headers) -> QTableWidget:
        table = QTableWidget(0, len(headers))
        table.setHorizontalHeaderLabels(list(headers))
        table.setEditTriggers(QAbstractItemView.NoEditTriggers)
        table.setSelectionBehavior(QAbstractItemView.SelectRows)
        table.setSelectionMode(QAbstractItemView.SingleSelection)
        table.verticalHeader().setVisible(False)
        table.horizontalHeader().setSectionResizeMode(QHeaderView.ResizeToContents)
        table.horizontalHeader().setStretchLastSection(True)
        return table

    def _confirm(self, title: str, text: str) -> bool:
        return QMessageBox.question(self, title, text) == QMessageBox.Yes

    # ===== async plumbing =====
    def _run(self, coro: Awaitable[Any], changed: bool = False, then: Optional[Callable[[Any], None]] = None) -> None:
        self._in_flight += 1

        def _finish(result: Any) -> None:
            self._in_flight -= 1
            self.render()
            if changed and result:
                record_events.records_changed.emit(self.records_kind)
            if then is not None:
                then(result)

        def _failed(exc: BaseException) -> None:
            self._in_flight -= 1
            self.render()

        self.bridge.submit(coro, on_done=_finish, on_error=_failed)

    def reload(self) -> None:
        self._run(self.page.load())

    def render(self) -> None:
        self.bridge.apply(self._capture, on_done=self._paint)

    def _capture(self) -> Dict[str, Any]:
        return {}

    def _paint(self, captured: Dict[str, Any]) -> None:
        pass

    # ===== banners =====
    def _forward_banner(self, banner: Banner) -> None:
        # called on the asyncio thread; the signal hops to the GUI thread
        self.banner_requested.emit(banner.message, banner.level, max(0.5, banner.expires_at - time.monotonic()))

    def _show_banner(self, message: str, level: str, seconds: float) -> None:
        self.banner.setText(message)
        self.banner.setStyleSheet(BANNER_STYLES.get(level, BANNER_STYLES["success"]))
        self.banner.setVisible(True)
        self._banner_timer.start(int(seconds * 1000))
