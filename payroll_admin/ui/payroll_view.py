"""Payroll tab: summaries, final payroll generation and the approval lifecycle."""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QCheckBox, QComboBox, QDialog, QDialogButtonBox, QHBoxLayout, QInputDialog, QLabel, QLineEdit,
    QListWidget, QListWidgetItem, QMessageBox, QSpinBox, QTableWidgetItem, QTabWidget, QVBoxLayout, QWidget
)

from ..pages.payroll import PayrollPages, is_read_only
from .async_bridge import AsyncBridge
from .deductions_grid import MONTHS
from .page_view import PageView

PERIODS = (("", "All periods"), ("1st_half", "1st Half"), ("2nd_half", "2nd Half"))
SUMMARY_HEADERS = ("Employee No", "Employee", "Department", "Period", "Status", "Gross", "Deductions", "Net")
FINAL_HEADERS = ("Employee No", "Employee", "Period", "Status", "Approval", "Gross", "Net")


def _money(value: float) -> str:
    return f"{value:,.2f}"


def _period(entity: Any) -> str:
    return f"{entity.year}-{entity.month:02d} {entity.period_type.replace('_', ' ')}"


class _GenerateDialog(QDialog):
    """Pick the posted summaries to turn into final payrolls."""

    def __init__(self, available: List[Any], parent: Optional[QWidget] = None):
        super().__init__(parent)
        self.setWindowTitle("Generate final payrolls")
        self.resize(480, 420)
        lay = QVBoxLayout(self)
        lay.addWidget(QLabel("Posted summaries without a final payroll:"))
        self.list = QListWidget()
        for s in available:
            item = QListWidgetItem(f"{s.employee_no}  {s.employee_name}  ·  {_period(s)}  ·  {_money(s.net_pay)}")
            item.setFlags(item.flags() | Qt.ItemIsUserCheckable)
            item.setCheckState(Qt.Checked)
            item.setData(Qt.UserRole, s.id)
            self.list.addItem(item)
        lay.addWidget(self.list, 1)
        self.cb_force = QCheckBox("Regenerate existing drafts")
        self.cb_approve = QCheckBox("Approve immediately")
        lay.addWidget(self.cb_force)
        lay.addWidget(self.cb_approve)
        btns = QDialogButtonBox(QDialogButtonBox.Ok | QDialogButtonBox.Cancel)
        btns.accepted.connect(self.accept)
        btns.rejected.connect(self.reject)
        lay.addWidget(btns)

    def summary_ids(self) -> List[int]:
        items = (self.list.item(i) for i in range(self.list.count()))
        return [item.data(Qt.UserRole) for item in items if item.checkState() == Qt.Checked]


class PayrollView(PageView):
    records_kind = "payroll"

    def __init__(self, bridge: AsyncBridge, page: PayrollPages, parent: Optional[QWidget] = None):
        super().__init__(bridge, page, parent)
        self._summaries: List[Any] = []
        self._finals: List[Any] = []
        self._available: List[Any] = []

        today = date.today()
        self.year = QSpinBox()
        self.year.setRange(2000, 2100)
        self.year.setValue(today.year)
        self.month = QComboBox()
        self.month.addItem("All months", None)
        for n, name in enumerate(MONTHS, start=1):
            self.month.addItem(name, n)
        self.month.setCurrentIndex(today.month)
        self.period = QComboBox()
        for value, label in PERIODS:
            self.period.addItem(label, value)
        self.search = QLineEdit()
        self.search.setPlaceholderText("Search employee…")
        self.search.returnPressed.connect(self.reload)
        for label, w in (("Year", self.year), ("Month", self.month), ("Period", self.period)):
            self.toolbar.addWidget(QLabel(label))
            self.toolbar.addWidget(w)
        self.toolbar.addWidget(self.search, 1)
        self._button("Load", self.reload)

        self.tabs = QTabWidget(self)
        self.summaries = self._table(SUMMARY_HEADERS)
        self.summaries.cellDoubleClicked.connect(lambda _r, _c: self._summary_details())
        summary_tab = QWidget()
        s_lay = QVBoxLayout(summary_tab)
        s_bar = QHBoxLayout()
        self._button("Details", self._summary_details, s_bar)
        self._button("Generate Final Payrolls…", self._generate, s_bar)
        s_bar.addStretch(1)
        s_lay.addLayout(s_bar)
        s_lay.addWidget(self.summaries, 1)
        self.tabs.addTab(summary_tab, "Payroll Summaries")

        self.finals = self._table(FINAL_HEADERS)
        self.finals.cellDoubleClicked.connect(lambda _r, _c: self._final_details())
        final_tab = QWidget()
        f_lay = QVBoxLayout(final_tab)
        f_bar = QHBoxLayout()
        for text, slot in (
            ("Details", self._final_details),
            ("Approve", lambda: self._on_final(self.page.approve)),
            ("Reject…", self._reject),
            ("Finalize", lambda: self._on_final(self.page.finalize)),
            ("Mark Paid", lambda: self._on_final(self.page.mark_paid)),
            ("Delete", self._delete),
        ):
            self._button(text, slot, f_bar)
        f_bar.addStretch(1)
        f_lay.addLayout(f_bar)
        f_lay.addWidget(self.finals, 1)
        self.tabs.addTab(final_tab, "Final Payrolls")
        self.layout().addWidget(self.tabs, 1)

    def _apply_filters(self) -> None:
        self.bridge.apply(
            lambda filters: self.page.set_filters(**filters),
            {
                "year": self.year.value(),
                "month": self.month.currentData(),
                "period_type": self.period.currentData(),
                "search": self.search.text().strip(),
            },
        )

    def reload(self) -> None:
        self._apply_filters()
        super().reload()

    # ===== rendering =====
    def _capture(self) -> Dict[str, Any]:
        return {
            "summaries": list(self.page.summaries),
            "finals": list(self.page.finals),
            "available": list(self.page.available),
        }

    @staticmethod
    def _fill(table, rows: List[tuple]) -> None:
        table.setRowCount(len(rows))
        for r, values in enumerate(rows):
            for c, text in enumerate(values):
                item = QTableWidgetItem(text)
                if c >= len(values) - 2:
                    item.setTextAlignment(Qt.AlignRight | Qt.AlignVCenter)
                table.setItem(r, c, item)

    def _paint(self, captured: Dict[str, Any]) -> None:
        self._summaries = captured["summaries"]
        self._finals = captured["finals"]
        self._available = captured["available"]
        self._fill(self.summaries, [
            (s.employee_no, s.employee_name, s.department, _period(s), s.status,
             _money(s.gross_pay), _money(s.total_deductions), _money(s.net_pay))
            for s in self._summaries
        ])
        self._fill(self.finals, [
            (f.employee_no, f.employee_name, _period(f), f.status, f.approval_status,
             _money(f.gross_pay), _money(f.net_pay))
            for f in self._finals
        ])

    # ===== summaries =====
    def _current(self, table, rows: List[Any]) -> Any:
        row = table.currentRow()
        return rows[row] if 0 <= row < len(rows) else None

    def _summary_details(self) -> None:
        summary = self._current(self.summaries, self._summaries)
        if summary is None:
            return

        def _show(details: Optional[Dict[str, list]]) -> None:
            if details is None:
                return
            lines = [f"{summary.employee_name} · {_period(summary)}", ""]
            lines += [f"Benefit #{b.id}: {_money(b.total)}" for b in details["benefits"]]
            lines += [f"Deduction #{d.id}: {_money(d.total)}" for d in details["deductions"]]
            QMessageBox.information(self, "Summary details", "\n".join(lines))

        self._run(self.page.summary_details(summary.id), then=_show)

    def _generate(self) -> None:
        if not self._available:
            self._show_banner("No posted summaries are waiting for a final payroll.", "error", 3.0)
            return
        dlg = _GenerateDialog(self._available, self)
        if dlg.exec() != QDialog.Accepted:
            return
        self._run(
            self.page.generate(
                dlg.summary_ids(),
                self.year.value(),
                self.month.currentData() or date.today().month,
                force_regenerate=dlg.cb_force.isChecked(),
                auto_approve=dlg.cb_approve.isChecked(),
            ),
            changed=True,
        )

    # ===== final payrolls =====
    def _on_final(self, action) -> None:
        final = self._current(self.finals, self._finals)
        if final is None:
            return
        if is_read_only(final) and action != self.page.mark_paid:
            self._show_banner("Finalized or paid payrolls cannot change.", "error", 3.0)
            return
        self._run(action(final), changed=True)

    def _reject(self) -> None:
        final = self._current(self.finals, self._finals)
        if final is None:
            return
        remarks, ok = QInputDialog.getText(self, "Reject payroll", "Reason for rejection:")
        if ok:
            self._run(self.page.reject(final, remarks), changed=True)

    def _delete(self) -> None:
        final = self._current(self.finals, self._finals)
        if final is not None and self._confirm("Delete", f"Delete the payroll for {final.employee_name}?"):
            self._run(self.page.delete(final), changed=True)

    def _final_details(self) -> None:
        final = self._current(self.finals, self._finals)
        if final is None:
            return

        def _show(breakdown: Dict[str, Any]) -> None:
            lines = [f"{final.employee_name} · {_period(final)} · {final.status}", ""]
            lines += [f"{key.replace('_', ' ').title()}: {value}" for key, value in breakdown.items()]
            QMessageBox.information(self, "Calculation breakdown", "\n".join(lines))

        def _loaded(detail: Any) -> None:
            if detail is not None:
                self.bridge.apply(lambda: dict(self.page.breakdown), on_done=_show)

        self._run(self.page.show_final(final.id), then=_loaded)
