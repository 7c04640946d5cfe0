from rpm_builder.resilience.retry import RetryPolicy

__all__ = ["RetryPolicy"]
