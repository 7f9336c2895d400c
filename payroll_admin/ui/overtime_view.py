"""Overtime approvals tab."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QComboBox, QDialog, QDialogButtonBox, QFormLayout, QLabel, QLineEdit, QTableWidgetItem,
    QVBoxLayout, QWidget
)

from ..pages.overtime import STATUS_LABELS, OvertimeApprovals
from .async_bridge import AsyncBridge
from .page_view import PageView

HEADERS = ("", "Employee", "Date", "Start", "End", "Hours", "Rate", "Reason", "Status", "Remarks")
ACTION_LABELS = {**STATUS_LABELS, "manager_approved": "Approve (Manager)", "force_approved": "Force Approve"}


class _StatusDialog(QDialog):
    def __init__(self, title: str, choices: Tuple[str, ...], parent: Optional[QWidget] = None):
        super().__init__(parent)
        self.setWindowTitle(title)
        lay = QVBoxLayout(self)
        form = QFormLayout()
        self.cb_status = QComboBox()
        for status in choices:
            self.cb_status.addItem(ACTION_LABELS.get(status, status), status)
        self.ed_remarks = QLineEdit()
        form.addRow("New status", self.cb_status)
        form.addRow("Remarks", self.ed_remarks)
        lay.addLayout(form)
        btns = QDialogButtonBox(QDialogButtonBox.Ok | QDialogButtonBox.Cancel)
        btns.accepted.connect(self.accept)
        btns.rejected.connect(self.reject)
        lay.addWidget(btns)

    def choice(self) -> Tuple[str, Optional[str]]:
        return self.cb_status.currentData(), self.ed_remarks.text().strip() or None


class OvertimeView(PageView):
    records_kind = "overtime"

    def __init__(self, bridge: AsyncBridge, page: OvertimeApprovals, parent: Optional[QWidget] = None):
        super().__init__(bridge, page, parent)
        self._rows: List[Any] = []
        self._transitions: Dict[int, Tuple[str, ...]] = {}
        self._painting = False

        self.status = QComboBox()
        self.status.addItem("All statuses", None)
        for value, label in STATUS_LABELS.items():
            self.status.addItem(label, value)
        self.status.currentIndexChanged.connect(self._on_status_filter)
        self.toolbar.addWidget(QLabel("Status"))
        self.toolbar.addWidget(self.status)
        self.toolbar.addStretch(1)
        self._button("Reload", self.reload)
        self._button("Update Status…", self._update_current)
        self._button("Update Selected…", self._update_selected)
        self._button("Prev", lambda: self._run(self._turn_page(-1)))
        self._button("Next", lambda: self._run(self._turn_page(1)))

        self.table = self._table(HEADERS)
        self.table.itemChanged.connect(self._on_item_changed)
        self.table.cellDoubleClicked.connect(lambda _r, _c: self._update_current())
        self.layout().addWidget(self.table, 1)
        self.footer = QLabel("")
        self.layout().addWidget(self.footer)

    def _set_status_filter(self, status: Optional[str]) -> None:
        self.page.status_filter = status
        self.page.page = 1

    def _on_status_filter(self, _index: int) -> None:
        self.bridge.apply(self._set_status_filter, self.status.currentData())
        self.reload()

    async def _turn_page(self, step: int) -> bool:
        target = self.page.page + step
        if not 1 <= target <= self.page.last_page:
            return False
        return await self.page.load(target)

    # ===== rendering =====
    def _capture(self) -> Dict[str, Any]:
        page = self.page
        return {
            "rows": list(page.overtimes),
            "selected": set(page.selected),
            "transitions": {o.id: page.transitions_for(o) for o in page.overtimes},
            "footer": f"Page {page.page} of {page.last_page} · {len(page.selected)} selected",
        }

    def _paint(self, captured: Dict[str, Any]) -> None:
        self._rows = captured["rows"]
        self._transitions = captured["transitions"]
        self._painting = True
        try:
            self.table.setRowCount(len(self._rows))
            for r, o in enumerate(self._rows):
                check = QTableWidgetItem()
                check.setFlags(Qt.ItemIsEnabled | Qt.ItemIsUserCheckable)
                check.setCheckState(Qt.Checked if o.id in captured["selected"] else Qt.Unchecked)
                self.table.setItem(r, 0, check)
                remarks = o.hrd_remarks or o.dept_remarks or ""
                values = (
                    str(o.employee_id), o.date.isoformat(), o.start_time.strftime("%H:%M"),
                    o.end_time.strftime("%H:%M"), f"{o.total_hours:.2f}", f"{o.rate:g}", o.reason,
                    STATUS_LABELS.get(o.status, o.status), remarks,
                )
                for c, text in enumerate(values, start=1):
                    self.table.setItem(r, c, QTableWidgetItem(text))
            self.footer.setText(captured["footer"])
        finally:
            self._painting = False

    # ===== actions =====
    def _on_item_changed(self, item: QTableWidgetItem) -> None:
        if self._painting or item.column() != 0 or item.row() >= len(self._rows):
            return
        self.bridge.apply(self.page.toggle, self._rows[item.row()].id, on_done=lambda _r: self.render())

    def _update_current(self) -> None:
        row = self.table.currentRow()
        if not 0 <= row < len(self._rows):
            return
        overtime = self._rows[row]
        choices = self._transitions.get(overtime.id, ())
        if not choices:
            self._show_banner("You cannot change this request's status.", "error", 3.0)
            return
        dlg = _StatusDialog("Update overtime status", choices, self)
        if dlg.exec() == QDialog.Accepted:
            status, remarks = dlg.choice()
            self._run(self.page.update_status(overtime.id, status, remarks), changed=True)

    def _update_selected(self) -> None:
        # union of the visible rows' transitions; refusals come back per request
        choices = tuple(dict.fromkeys(s for options in self._transitions.values() for s in options))
        if not choices:
            choices = ("manager_approved", "approved", "rejected")
        dlg = _StatusDialog("Update selected overtime", choices, self)
        if dlg.exec() == QDialog.Accepted:
            status, remarks = dlg.choice()
            self._run(self.page.bulk_update_status(status, remarks), changed=True)
