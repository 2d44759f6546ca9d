from rawdahscope.infrastructure.retry.retry_executor import (
    FetchAttemptResult,
    RetryPolicy,
    execute_with_retry,
)

__all__ = ["FetchAttemptResult", "RetryPolicy", "execute_with_retry"]
