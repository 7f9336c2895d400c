"""Deductions tab: the record grid plus cutoff filters and whole-cutoff actions."""

from __future__ import annotations

from functools import partial
from pathlib import Path
from typing import Any, Dict, Optional

from PySide6.QtWidgets import (
    QComboBox, QFileDialog, QHBoxLayout, QLabel, QPushButton, QSpinBox, QWidget
)

from ..pages.deductions import DeductionsPage
from .async_bridge import AsyncBridge
from .grid_widget import RecordGridWidget

MONTHS = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]
SAVE_FILTERS = "Excel (*.xlsx);;CSV (*.csv)"


class DeductionsGridWidget(RecordGridWidget):
    records_kind = "deductions"

    def __init__(self, bridge: AsyncBridge, page: DeductionsPage, parent: Optional[QWidget] = None):
        super().__init__(bridge, page, parent)

        filters = QHBoxLayout()
        self.cutoff = QComboBox()
        self.cutoff.addItem("1st Cutoff (1-15)", "1st")
        self.cutoff.addItem("2nd Cutoff (16-end)", "2nd")
        self.month = QComboBox()
        self.month.addItems(MONTHS)
        self.month.setCurrentIndex(page.month - 1)
        self.year = QSpinBox()
        self.year.setRange(2000, 2100)
        self.year.setValue(page.year)
        for w in (self.cutoff, self.month):
            w.currentIndexChanged.connect(self._on_filters)
        self.year.valueChanged.connect(self._on_filters)
        filters.addWidget(QLabel("Cutoff"))
        filters.addWidget(self.cutoff)
        filters.addWidget(QLabel("Month"))
        filters.addWidget(self.month)
        filters.addWidget(QLabel("Year"))
        filters.addWidget(self.year)
        filters.addStretch(1)
        self.counts = QLabel("")
        filters.addWidget(self.counts)
        self.layout().insertLayout(1, filters)

        actions = QHBoxLayout()
        for text, slot in (
            ("Create For All", lambda: self._run(self.page.bulk_create(), changed=True)),
            ("Post All", self._post_all),
            ("Delete Not Posted", self._delete_not_posted),
            ("Import", self._import),
            ("Export", self._export),
            ("Template", self._template),
            ("Prev", lambda: self._run(self.page.previous_page())),
            ("Next", lambda: self._run(self.page.next_page())),
        ):
            btn = QPushButton(text)
            btn.clicked.connect(slot)
            actions.addWidget(btn)
        actions.addStretch(1)
        self.layout().insertLayout(3, actions)

    def _on_filters(self, *_args) -> None:
        change = partial(
            self.page.set_filters,
            cutoff=self.cutoff.currentData(),
            month=self.month.currentIndex() + 1,
            year=self.year.value(),
        )
        self.bridge.apply(change)
        self.reload()

    def _post_all(self) -> None:
        start, end = self.page.date_range
        if self._confirm("Post all", f"Post every deduction from {start} to {end}? Posted records cannot be edited."):
            self._run(self.page.post_all(), changed=True)

    def _delete_not_posted(self) -> None:
        start, end = self.page.date_range
        if self._confirm("Delete not posted", f"Delete all unposted deductions from {start} to {end}?"):
            self._run(self.page.delete_all_not_posted(), changed=True)

    def _import(self) -> None:
        path, _ = QFileDialog.getOpenFileName(
            self, "Import deductions", "", "Spreadsheets (*.xlsx *.csv *.txt);;Excel (*.xlsx);;CSV (*.csv *.txt)"
        )
        if path:
            self._run(self.page.import_file(Path(path)), changed=True)

    def _save_path(self, title: str, stem: str) -> Optional[str]:
        path, chosen = QFileDialog.getSaveFileName(self, title, f"{stem}.xlsx", SAVE_FILTERS)
        if not path:
            return None
        if not Path(path).suffix:
            path += ".csv" if chosen.startswith("CSV") else ".xlsx"
        return path

    def _export(self) -> None:
        path = self._save_path("Export deductions", f"deductions_{self.page.cutoff}_{self.page.month}_{self.page.year}")
        if path:
            self._run(self.page.export(path))

    def _template(self) -> None:
        path = self._save_path("Save import template", "deductions_import_template")
        if path:
            self._run(self.page.download_template(path))

    def _capture(self) -> Dict[str, Any]:
        captured = super()._capture()
        s = self.page.status
        captured["counts"] = f"All: {s.all_count}  Posted: {s.posted_count}  Pending: {s.pending_count}"
        return captured

    def _paint(self, captured: Dict[str, Any]) -> None:
        super()._paint(captured)
        self.counts.setText(captured["counts"])
