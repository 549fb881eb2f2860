"""Health subsystem — probe engine, result store, monitor."""

from .engine import CheckResult, ResultStore, Status, probe
from .scheduler import Monitor, MonitorState, MonitorStateError
