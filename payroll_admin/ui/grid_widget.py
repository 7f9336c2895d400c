"""Qt view over a GridController."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from PySide6.QtCore import QEvent, QObject, Qt
from PySide6.QtGui import QBrush, QColor, QFont, QKeySequence
from PySide6.QtWidgets import (
    QAbstractItemView, QApplication, QFileDialog, QHeaderView, QLabel, QLineEdit, QTableWidget,
    QTableWidgetItem, QWidget
)

from ..grid.cells import CellRender, Editable, Locked, ReadOnly
from ..grid.paste import is_multi_cell
from .async_bridge import AsyncBridge
from .page_view import PageView

logger = logging.getLogger(__name__)

FIXED_COLS = ("", "Employee ID", "Employee Name", "Department")
FIELD_OFFSET = len(FIXED_COLS)

KEY_NAMES = {
    Qt.Key_Up: "ArrowUp",
    Qt.Key_Down: "ArrowDown",
    Qt.Key_Left: "ArrowLeft",
    Qt.Key_Right: "ArrowRight",
    Qt.Key_Tab: "Tab",
    Qt.Key_Backtab: "Tab",
    Qt.Key_Return: "Enter",
    Qt.Key_Enter: "Enter",
    Qt.Key_Escape: "Escape",
}

LOCKED_BRUSH = QBrush(QColor("#eeeeee"))
MISSING_BRUSH = QBrush(QColor("#9e9e9e"))


class RecordGridWidget(PageView):
    """
    Table of employees x amount fields backed by ``page.grid``.

    Clicking a cell opens it (creating the record first when needed); inside
    the editor arrows and Tab move, Enter saves, Escape cancels and a
    multi-cell clipboard is spread over the grid.
    """

    def __init__(self, bridge: AsyncBridge, page: Any, parent: Optional[QWidget] = None):
        super().__init__(bridge, page, parent)
        self.grid = page.grid
        self._rendering = False
        self._editor: Optional[QLineEdit] = None

        self.search = QLineEdit()
        self.search.setPlaceholderText("Search employees…")
        self.search.returnPressed.connect(self._on_search)
        self.toolbar.addWidget(self.search, 1)
        self._button("Reload", self.reload)
        self._button("Select All", self._select_all)
        self._button("Clear Selection", self._clear_selection)
        self._button("Post Selected", lambda: self._run(self.grid.bulk_post(), changed=True))
        self._button("Set Default", lambda: self._run(self.grid.bulk_set_default(), changed=True))
        self._button("Export Selected", self._export_selected)

        self.table = QTableWidget(0, FIELD_OFFSET + len(self.grid.fields) + 1)
        self.table.setEditTriggers(QAbstractItemView.NoEditTriggers)
        self.table.setSelectionMode(QAbstractItemView.NoSelection)
        self.table.cellClicked.connect(self._on_cell_clicked)
        self.table.itemChanged.connect(self._on_item_changed)
        hdr = self.table.horizontalHeader()
        hdr.setSectionResizeMode(QHeaderView.ResizeToContents)
        hdr.setSectionsClickable(False)
        self.layout().addWidget(self.table, 1)

        self.footer = QLabel("")
        self.layout().addWidget(self.footer)

    # ===== async plumbing =====
    def _mutate(self, fn, *args: Any) -> None:
        self.bridge.apply(fn, *args, on_done=lambda _result: self.render())

    def _set_search(self, text: str) -> None:
        self.page.search = text
        self.page.page = 1

    def _on_search(self) -> None:
        self.bridge.apply(self._set_search, self.search.text().strip())
        self.reload()

    # ===== selection =====
    def _select_all(self) -> None:
        self._mutate(self.grid.select_all)

    def _clear_selection(self) -> None:
        self._mutate(self.grid.clear_selection)

    def _export_selected(self) -> None:
        self.bridge.apply(self.grid.export_selected, on_done=self._save_export)

    def _save_export(self, content: Optional[str]) -> None:
        self.render()
        if content is None:
            return
        path, _ = QFileDialog.getSaveFileName(self, "Export selected", f"{self.records_kind}_selected.csv", "CSV (*.csv)")
        if path:
            with open(path, "w", encoding="utf-8", newline="") as f:
                f.write(content)

    def _on_item_changed(self, item: QTableWidgetItem) -> None:
        if self._rendering or item.column() != 0:
            return
        self._mutate(self.grid.toggle_select, item.row())

    # ===== editing =====
    def _field_col(self, table_col: int) -> Optional[int]:
        col = table_col - FIELD_OFFSET
        return col if 0 <= col < len(self.grid.fields) else None

    async def _leave_editor(self) -> bool:
        return self.grid.open_position is not None and await self.grid.commit()

    async def _paste_at_open_cell(self, text: str):
        pos = self.grid.open_position
        return None if pos is None else await self.grid.paste(text, *pos)

    def _type_draft(self, text: str) -> None:
        if self.grid.editor is not None:
            self.grid.editor.type(text)

    def _on_cell_clicked(self, row: int, table_col: int) -> None:
        if self._in_flight:
            return
        col = self._field_col(table_col)
        if col is None:
            self._run(self._leave_editor(), changed=True)
            return
        # click() saves the open cell before opening the next one
        self._run(self.grid.click(row, col), changed=True)

    def _on_text_edited(self, text: str) -> None:
        self.bridge.apply(self._type_draft, text)

    def eventFilter(self, obj: QObject, ev: QEvent) -> bool:  # type: ignore[override]
        if obj is not self._editor:
            return super().eventFilter(obj, ev)
        if ev.type() == QEvent.KeyPress:
            if ev.matches(QKeySequence.Paste):
                text = QApplication.clipboard().text()
                if is_multi_cell(text):
                    self._run(self._paste_at_open_cell(text), changed=True)
                    return True
                return False
            name = KEY_NAMES.get(ev.key())
            if name is None:
                return False
            shift = ev.key() == Qt.Key_Backtab or bool(ev.modifiers() & Qt.ShiftModifier)
            if not self._in_flight:
                self._run(self.grid.handle_key(name, shift, draft=obj.text()), changed=name != "Escape")
            return True
        if ev.type() == QEvent.FocusOut and not self._rendering and not self._in_flight:
            # a click inside the table is saved by _on_cell_clicked instead
            clicked_table = ev.reason() == Qt.MouseFocusReason and self.table.viewport().underMouse()
            if not clicked_table:
                self._run(self.grid.commit(obj.text()), changed=True)
        return super().eventFilter(obj, ev)

    def _open_editor(self, row: int, col: int, draft: str) -> None:
        editor = self._editor
        if editor is None or self.table.cellWidget(row, col) is not editor:
            editor = QLineEdit()
            editor.setAlignment(Qt.AlignRight | Qt.AlignVCenter)
            editor.installEventFilter(self)
            editor.textEdited.connect(self._on_text_edited)
            self.table.setCellWidget(row, col, editor)
            self._editor = editor
        editor.setText(draft)
        editor.setFocus()
        editor.selectAll()

    def _close_editor(self) -> None:
        if self._editor is None:
            return
        for r in range(self.table.rowCount()):
            for c in range(FIELD_OFFSET, FIELD_OFFSET + len(self.grid.fields)):
                if self.table.cellWidget(r, c) is self._editor:
                    self.table.removeCellWidget(r, c)
        self._editor = None

    # ===== rendering =====
    def _amount_item(self, cell: CellRender) -> QTableWidgetItem:
        if isinstance(cell, Locked):
            item = QTableWidgetItem(cell.text)
            item.setBackground(LOCKED_BRUSH)
            item.setToolTip("Posted records cannot be edited")
        elif isinstance(cell, ReadOnly):
            item = QTableWidgetItem(cell.text)
            if not cell.record_exists:
                item.setForeground(MISSING_BRUSH)
                font = QFont()
                font.setItalic(True)
                item.setFont(font)
                item.setToolTip("Click to create a record")
        else:
            item = QTableWidgetItem("")
        item.setTextAlignment(Qt.AlignRight | Qt.AlignVCenter)
        return item

    def _capture(self) -> Dict[str, Any]:
        """Snapshot the grid and page on the loop thread; ``_paint`` only reads the result."""
        snap = self.grid.snapshot()
        return {"snap": snap, "footer": self._footer_text(snap)}

    def _paint(self, captured: Dict[str, Any]) -> None:
        snap = captured["snap"]
        self._rendering = True
        try:
            self.table.setHorizontalHeaderLabels([*FIXED_COLS, *snap.headers, "Total"])
            if snap.open_cell is None:
                self._close_editor()
            self.table.setRowCount(len(snap.rows))
            for r, view in enumerate(snap.rows):
                check = QTableWidgetItem()
                if view.posted:
                    check.setFlags(Qt.ItemIsEnabled)
                else:
                    check.setFlags(Qt.ItemIsEnabled | Qt.ItemIsUserCheckable)
                    check.setCheckState(Qt.Checked if view.selected else Qt.Unchecked)
                self.table.setItem(r, 0, check)
                name = view.name + ("  ★" if view.is_default else "")
                for c, text in enumerate((view.idno, name, view.department), start=1):
                    self.table.setItem(r, c, QTableWidgetItem(text))
                for c, cell in enumerate(view.cells):
                    self.table.setItem(r, FIELD_OFFSET + c, self._amount_item(cell))
                    if isinstance(cell, Editable):
                        self._open_editor(r, FIELD_OFFSET + c, cell.draft)
                total = QTableWidgetItem(view.total)
                total.setTextAlignment(Qt.AlignRight | Qt.AlignVCenter)
                self.table.setItem(r, FIELD_OFFSET + len(view.cells), total)
            self.footer.setText(captured["footer"])
        finally:
            self._rendering = False

    def _footer_text(self, snap) -> str:
        text = f"Page {self.page.page} of {self.page.last_page} · {self.page.total} employees"
        if snap.selected_count:
            text += f" · {snap.selected_count} selected"
        return text


class BenefitDefaultsWidget(RecordGridWidget):
    records_kind = "benefits"

    def __init__(self, bridge: AsyncBridge, page: Any, parent: Optional[QWidget] = None):
        super().__init__(bridge, page, parent)
        self._button("Prev", lambda: self._run(self.page.previous_page()))
        self._button("Next", lambda: self._run(self.page.next_page()))
