from pydantic import BaseModel, Field


class BreakerState(BaseModel):
    """Circuit breaker of one vector backend.

    A success resets the failure counter. Once consecutive_failures reaches the
    threshold the backend is marked unavailable and stays so for the lifetime of
    the owning VectorStore; there is no half-open state.

    Mutations contain no await, so they are atomic with respect to other tasks
    on the event loop and need no lock.

    Attributes:
        available:            Whether the backend may be called.
        consecutive_failures: Failures since the last success.
        threshold:            Failures that trip the breaker.
    """

    available: bool = True
    consecutive_failures: int = 0
    threshold: int = Field(default=3, ge=1)

    def record_success(self) -> None:
        self.consecutive_failures = 0

    def record_failure(self) -> bool:
        """Count a failure.

        Returns:
            bool: True if this failure tripped the breaker.
        """
        self.consecutive_failures += 1
        if self.available and self.consecutive_failures >= self.threshold:
            self.available = False
            return True
        return False
