# payroll_admin/ui/login_dialog.py
from __future__ import annotations
from PySide6.QtCore import QSettings
from PySide6.QtWidgets import (
    QCheckBox, QDialog, QDialogButtonBox, QFormLayout, QLabel, QLineEdit, QVBoxLayout, QWidget
)

REMEMBER_KEY = "login/remember_user"
USERNAME_KEY = "login/username"


class LoginDialog(QDialog):
    """Username/password prompt; the caller does the request and reports failures via show_error()."""

    def __init__(self, parent: QWidget | None = None, server: str = ""):
        super().__init__(parent)
        self.setWindowTitle("Payroll Admin — Sign in")
        self.setMinimumWidth(360)
        self.settings = QSettings("PayrollAdmin", "Desktop")

        layout = QVBoxLayout(self)
        if server:
            hint = QLabel(f"Server: {server}")
            hint.setStyleSheet("color: #666;")
            layout.addWidget(hint)

        self.ed_user = QLineEdit(placeholderText="Username")
        self.ed_pass = QLineEdit(placeholderText="Password", echoMode=QLineEdit.Password)
        self.cb_show = QCheckBox("Show password")
        self.cb_show.toggled.connect(
            lambda on: self.ed_pass.setEchoMode(QLineEdit.Normal if on else QLineEdit.Password)
        )
        self.cb_remember = QCheckBox("Remember username on this PC")

        fields = QFormLayout()
        fields.addRow("Username", self.ed_user)
        fields.addRow("Password", self.ed_pass)
        fields.addRow("", self.cb_show)
        fields.addRow("", self.cb_remember)
        layout.addLayout(fields)

        self.error = QLabel(wordWrap=True)
        self.error.setStyleSheet("color: #8a1c1c;")
        self.error.hide()
        layout.addWidget(self.error)

        buttons = QDialogButtonBox(QDialogButtonBox.Ok | QDialogButtonBox.Cancel)
        buttons.button(QDialogButtonBox.Ok).setText("Sign in")
        buttons.accepted.connect(self._submit)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)
        self.ed_user.returnPressed.connect(self.ed_pass.setFocus)
        self.ed_pass.returnPressed.connect(self._submit)

        self._restore_username()

    def credentials(self) -> tuple[str, str]:
        return self.ed_user.text().strip(), self.ed_pass.text()

    def show_error(self, message: str) -> None:
        self.error.setText(message)
        self.error.show()
        self.ed_pass.selectAll()
        self.ed_pass.setFocus()

    def _restore_username(self) -> None:
        remembered = self.settings.value(USERNAME_KEY, "", str)
        if self.settings.value(REMEMBER_KEY, False, bool) and remembered:
            self.ed_user.setText(remembered)
            self.cb_remember.setChecked(True)
            self.ed_pass.setFocus()

    def _submit(self) -> None:
        username, password = self.credentials()
        if not username or not password:
            self.show_error("Enter both username and password.")
            return
        self.settings.setValue(REMEMBER_KEY, self.cb_remember.isChecked())
        if self.cb_remember.isChecked():
            self.settings.setValue(USERNAME_KEY, username)
        else:
            self.settings.remove(USERNAME_KEY)
        self.error.hide()
        self.accept()
