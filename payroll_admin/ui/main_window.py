from PySide6.QtWidgets import QMainWindow, QLabel, QTabWidget, QStatusBar
from PySide6.QtCore import QTimer, Signal

from datetime import datetime

from ..core.events import record_events
from ..pages.deductions import DeductionsPage
from ..pages.employee_defaults import EmployeeDefaultsPage
from ..pages.org_chart import OrgChartPage
from ..pages.overtime import OvertimeApprovals
from ..pages.payroll import PayrollPages
from .async_bridge import AsyncBridge
from .deductions_grid import DeductionsGridWidget
from .grid_widget import BenefitDefaultsWidget
from .org_chart_view import OrgChartView
from .overtime_view import OvertimeView
from .payroll_view import PayrollView


class MainWindow(QMainWindow):
    logout_requested = Signal()

    def __init__(self, bridge: AsyncBridge, deductions: DeductionsPage, defaults: EmployeeDefaultsPage,
                 org_chart: OrgChartPage, overtime: OvertimeApprovals, payroll: PayrollPages,
                 username: str = ""):
        super().__init__()
        self.setWindowTitle("Payroll Admin")
        self.resize(1366, 860)

        # ---------- Menu ----------
        account = self.menuBar().addMenu("&Account")
        act_logout = account.addAction("Sign out")
        act_logout.triggered.connect(self.logout_requested.emit)
        act_quit = account.addAction("Exit")
        act_quit.triggered.connect(self.close)

        # ---------- Central tabs ----------
        self.content_tabs = QTabWidget(self)
        self.deductions_tab = DeductionsGridWidget(bridge, deductions, self)
        self.defaults_tab = BenefitDefaultsWidget(bridge, defaults, self)
        self.content_tabs.addTab(self.deductions_tab, "Deductions")
        self.content_tabs.addTab(self.defaults_tab, "Benefit Defaults")
        self.overtime_tab = OvertimeView(bridge, overtime, self)
        self.payroll_tab = PayrollView(bridge, payroll, self)
        self.org_tab = OrgChartView(bridge, org_chart, self)
        self.content_tabs.addTab(self.overtime_tab, "Overtime Approvals")
        self.content_tabs.addTab(self.payroll_tab, "Payroll")
        self.content_tabs.addTab(self.org_tab, "Org Chart")
        self.setCentralWidget(self.content_tabs)

        # ---------- Status bar ----------
        sb = QStatusBar(self)
        self.user_lbl = QLabel(f"Signed in as {username}" if username else "")
        self.clock_lbl = QLabel("")
        sb.addWidget(self.user_lbl)
        sb.addPermanentWidget(self.clock_lbl)
        self.setStatusBar(sb)

        self.timer = QTimer(self)
        self.timer.timeout.connect(self._tick_clock)
        self.timer.start(1000)
        self._tick_clock()

        record_events.records_changed.connect(self._on_records_changed)

        for tab in (self.deductions_tab, self.defaults_tab, self.overtime_tab, self.payroll_tab, self.org_tab):
            tab.reload()

    def _tick_clock(self):
        self.clock_lbl.setText(datetime.now().strftime("%a %d %b %Y  %H:%M:%S"))

    def _on_records_changed(self, kind: str):
        self.statusBar().showMessage(f"{kind.capitalize()} updated at {datetime.now():%H:%M:%S}", 5000)
