"""Service configuration — typed specs loaded from services.yaml."""

from .registry import ConfigError, DashboardConfig, MonitorConfig, ServiceSpec, load_config
