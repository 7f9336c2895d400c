"""Global application-wide signals.

These are lightweight Qt signals that let the grids and the main window react
to shared state changes (a record saved in the deductions grid, a new default
template) without the widgets holding references to each other.
"""

from __future__ import annotations

from PySide6.QtCore import QObject, Signal


class _RecordEvents(QObject):
    """Signals related to deduction and benefit data changes."""

    # emitted with "deductions" or "benefits"
    records_changed = Signal(str)


# Single shared instance that other modules can import and connect to.
record_events = _RecordEvents()
