from .manager_metrics import ManagerMetrics
from .prometheus_exporter import export_metrics_to_prometheus

__all__ = [
    "ManagerMetrics",
    "export_metrics_to_prometheus",
]
