from contextlib import ContextDecorator

from prometheus_client import CollectorRegistry, Counter, Histogram
from sqlalchemy import event


class QueryCounter(ContextDecorator):
    """Count SQL statements executed on a SQLAlchemy engine within a scope."""

    def __init__(self, engine):
        self.engine = engine
        self.count = 0
        self._enabled = False

    def _before_cursor_execute(self, conn, cursor, statement, parameters, context, executemany):
        self.count += 1

    def __enter__(self):
        if self.engine is not None:
            event.listen(self.engine, 'before_cursor_execute', self._before_cursor_execute)
            self._enabled = True
        return self

    def __exit__(self, exc_type, exc, tb):
        if self._enabled:
            event.remove(self.engine, 'before_cursor_execute', self._before_cursor_execute)
        return False


class SiteHubMetrics:
    """Prometheus metrics for the payroll and access-guard paths."""

    def __init__(self, registry: CollectorRegistry = None):
        self.registry = registry or CollectorRegistry()
        self.payroll_latency = Histogram(
            'sitehub_payroll_calculation_latency_seconds',
            'Latency of salary calculation runs',
            ['scope'],
            registry=self.registry,
        )
        self.export_latency = Histogram(
            'sitehub_salary_export_latency_seconds',
            'Latency of generating salary statement exports',
            ['output_type'],
            registry=self.registry,
        )
        self.guard_denials = Counter(
            'sitehub_access_guard_denials_total',
            'Requests rejected by the organization access guard',
            ['resource'],
            registry=self.registry,
        )
        self.records_calculated = Counter(
            'sitehub_salary_records_calculated_total',
            'Salary records produced by calculation runs',
            registry=self.registry,
        )

    def observe_payroll_latency(self, duration_s: float, restricted: bool):
        self.payroll_latency.labels(scope='restricted' if restricted else 'global').observe(duration_s)

    def observe_export_latency(self, duration_s: float, output_type: str):
        self.export_latency.labels(output_type=output_type).observe(duration_s)

    def increment_guard_denial(self, resource: str):
        self.guard_denials.labels(resource=resource).inc()

    def increment_records_calculated(self, value: int):
        if value:
            self.records_calculated.inc(value)


sitehub_metrics = SiteHubMetrics()
