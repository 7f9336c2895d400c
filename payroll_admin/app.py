# payroll_admin/app.py
import logging
import sys
from concurrent.futures import TimeoutError as FutureTimeout

from PySide6.QtWidgets import QApplication, QDialog

from .config import ClientConfig
from .pages.deductions import DeductionsPage
from .pages.employee_defaults import EmployeeDefaultsPage
from .pages.org_chart import OrgChartPage
from .pages.overtime import OvertimeApprovals
from .pages.payroll import PayrollPages
from .services.api_client import APIClient, APIError, describe_error
from .ui.async_bridge import AsyncBridge
from .ui.login_dialog import LoginDialog
from .ui.main_window import MainWindow

logger = logging.getLogger(__name__)

LOGIN_TIMEOUT = 30.0


def _login_once(bridge: AsyncBridge, client: APIClient) -> str | None:
    """Show the login dialog until the backend accepts; returns the status-bar label, or None on cancel."""
    dlg = LoginDialog(None, server=client.config.base_url)
    while True:
        if dlg.exec() != QDialog.Accepted:
            return None
        username, password = dlg.credentials()
        try:
            bridge.call(client.login(username, password), timeout=LOGIN_TIMEOUT)
        except (APIError, FutureTimeout) as exc:
            logger.warning("Login failed for %s: %s", username, exc)
            unauthorized = isinstance(exc, APIError) and exc.status_code == 401
            message = "Invalid username or password." if unauthorized else describe_error(exc)
            dlg.show_error(message)
            continue
        role = client.profile.get("role")
        return f"{username} ({role.replace('_', ' ')})" if role else username


def run_app(config: ClientConfig) -> int:
    app = QApplication.instance() or QApplication(sys.argv)
    app.setApplicationName("Payroll Admin")
    app.setOrganizationName("PayrollAdmin")

    bridge = AsyncBridge()
    bridge.start()
    client = APIClient(config)

    # Login loop: signing out closes the main window and returns to the login dialog
    try:
        while True:
            username = ""
            if not client.config.is_authenticated:
                username = _login_once(bridge, client)
                if username is None:
                    break

            win = MainWindow(
                bridge,
                DeductionsPage(client),
                EmployeeDefaultsPage(client),
                OrgChartPage(client),
                OvertimeApprovals(client, role=client.profile.get("role", "")),
                PayrollPages(client),
                username=username,
            )
            signed_out = False

            def _on_logout():
                nonlocal signed_out
                signed_out = True
                win.close()

            win.logout_requested.connect(_on_logout)
            win.showMaximized()
            app.exec()

            if not signed_out:
                break
            client.config = ClientConfig(base_url=config.base_url, timeout=config.timeout)
    finally:
        bridge.call(client.close(), timeout=5)
        bridge.stop()
    return 0
