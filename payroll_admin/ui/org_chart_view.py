"""Org chart tab: departments, lines and sections."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from PySide6.QtGui import QBrush, QColor
from PySide6.QtWidgets import (
    QComboBox, QDialog, QDialogButtonBox, QFormLayout, QLabel, QLineEdit, QTableWidgetItem,
    QVBoxLayout, QWidget
)

from ..pages.org_chart import OrgChartPage
from .async_bridge import AsyncBridge
from .page_view import PageView

KINDS = (("departments", "Departments"), ("lines", "Lines"), ("sections", "Sections"))
PARENT_FIELD = {"lines": "department_id", "sections": "line_id"}
HEADERS = ("Code", "Name", "Parent", "Description", "Status")
INACTIVE_BRUSH = QBrush(QColor("#9e9e9e"))


class _OrgUnitDialog(QDialog):
    """Create or edit one org unit; lines and sections pick an active parent."""

    def __init__(self, kind: str, parents: List[Any], unit: Any = None, parent: Optional[QWidget] = None):
        super().__init__(parent)
        label = dict(KINDS)[kind][:-1]
        self.setWindowTitle(f"Edit {label}" if unit else f"New {label}")
        self.kind = kind
        lay = QVBoxLayout(self)
        form = QFormLayout()

        self.ed_name = QLineEdit(getattr(unit, "name", ""))
        self.ed_code = QLineEdit(getattr(unit, "code", ""))
        self.ed_description = QLineEdit(getattr(unit, "description", None) or "")
        form.addRow("Name", self.ed_name)
        form.addRow("Code", self.ed_code)
        form.addRow("Description", self.ed_description)

        self.cb_parent: Optional[QComboBox] = None
        if kind in PARENT_FIELD:
            self.cb_parent = QComboBox()
            self.cb_parent.addItem("", None)
            for p in parents:
                self.cb_parent.addItem(f"{p.code} - {p.name}", p.id)
            current = getattr(unit, PARENT_FIELD[kind], None)
            idx = self.cb_parent.findData(current)
            if idx >= 0:
                self.cb_parent.setCurrentIndex(idx)
            form.addRow("Department" if kind == "lines" else "Line", self.cb_parent)

        lay.addLayout(form)
        self.errors = QLabel(wordWrap=True)
        self.errors.setStyleSheet("color: #8a1c1c;")
        self.errors.hide()
        lay.addWidget(self.errors)

        btns = QDialogButtonBox(QDialogButtonBox.Save | QDialogButtonBox.Cancel)
        btns.accepted.connect(self.accept)
        btns.rejected.connect(self.reject)
        lay.addWidget(btns)

    def payload(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.ed_name.text().strip(),
            "code": self.ed_code.text().strip(),
            "description": self.ed_description.text().strip() or None,
        }
        if self.cb_parent is not None:
            data[PARENT_FIELD[self.kind]] = self.cb_parent.currentData()
        return data

    def show_errors(self, errors: Dict[str, List[str]]) -> None:
        self.errors.setText("\n".join(m for messages in errors.values() for m in messages))
        self.errors.setVisible(bool(errors))


class OrgChartView(PageView):
    records_kind = "org chart"

    def __init__(self, bridge: AsyncBridge, page: OrgChartPage, parent: Optional[QWidget] = None):
        super().__init__(bridge, page, parent)
        self._units: List[Any] = []
        self._parents: Dict[str, List[Any]] = {"lines": [], "sections": []}

        self.kind = QComboBox()
        for kind, label in KINDS:
            self.kind.addItem(label, kind)
        self.kind.currentIndexChanged.connect(lambda _i: self.render())
        self.toolbar.addWidget(self.kind)
        self.toolbar.addStretch(1)
        self._button("Reload", self.reload)
        self._button("New", self._new)
        self._button("Edit", self._edit)
        self._button("Activate / Deactivate", self._toggle)
        self._button("Delete", self._delete)

        self.table = self._table(HEADERS)
        self.table.cellDoubleClicked.connect(lambda _r, _c: self._edit())
        self.layout().addWidget(self.table, 1)

    def _current_kind(self) -> str:
        return self.kind.currentData()

    def _current_unit(self) -> Any:
        row = self.table.currentRow()
        return self._units[row] if 0 <= row < len(self._units) else None

    # ===== rendering =====
    def _capture(self) -> Dict[str, Any]:
        page = self.page
        names = {d.id: d.name for d in page.departments}
        return {
            "units": {
                "departments": [(u, "") for u in page.departments],
                "lines": [(u, u.department_name or names.get(u.department_id, "")) for u in page.lines],
                "sections": [(u, u.line_name or "") for u in page.sections],
            },
            "parents": {"lines": page.active_departments(), "sections": page.active_lines()},
        }

    def _paint(self, captured: Dict[str, Any]) -> None:
        rows = captured["units"][self._current_kind()]
        self._parents = captured["parents"]
        self._units = [unit for unit, _ in rows]
        self.table.setRowCount(len(rows))
        for r, (unit, parent_name) in enumerate(rows):
            values = (unit.code, unit.name, parent_name, unit.description or "",
                      "Active" if unit.is_active else "Inactive")
            for c, text in enumerate(values):
                item = QTableWidgetItem(text)
                if not unit.is_active:
                    item.setForeground(INACTIVE_BRUSH)
                self.table.setItem(r, c, item)

    # ===== actions =====
    def _open_form(self, unit: Any = None) -> None:
        kind = self._current_kind()
        dlg = _OrgUnitDialog(kind, self._parents.get(kind, []), unit, self)
        self._submit(dlg, kind, unit.id if unit is not None else None)

    def _submit(self, dlg: _OrgUnitDialog, kind: str, unit_id: Optional[int]) -> None:
        if dlg.exec() != QDialog.Accepted:
            return

        def _retry(errors: Dict[str, List[str]]) -> None:
            # field errors from the page or the server reopen the form
            if errors:
                dlg.show_errors(errors)
                self._submit(dlg, kind, unit_id)

        def _after(saved: Any) -> None:
            if saved is None:
                self.bridge.apply(lambda: dict(self.page.form_errors), on_done=_retry)

        self._run(self.page.save(kind, dlg.payload(), unit_id), changed=True, then=_after)

    def _new(self) -> None:
        self._open_form()

    def _edit(self) -> None:
        unit = self._current_unit()
        if unit is not None:
            self._open_form(unit)

    def _toggle(self) -> None:
        unit = self._current_unit()
        if unit is not None:
            self._run(self.page.toggle_active(self._current_kind(), unit.id), changed=True)

    def _delete(self) -> None:
        unit = self._current_unit()
        if unit is None:
            return
        if self._confirm("Delete", f"Delete {unit.name} ({unit.code})?"):
            self._run(self.page.delete(self._current_kind(), unit.id), changed=True)
