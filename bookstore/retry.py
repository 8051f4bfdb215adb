"""Bounded retry for startup connections."""
import time
import logging
from typing import Callable, TypeVar, Tuple, Type

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryPolicy:
    """Retry a callable a fixed number of times with a fixed delay."""
    
    def __init__(
        self,
        max_attempts: int = 5,
        delay: float = 5.0,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Initialize retry policy.
        
        Args:
            max_attempts: Total number of attempts (at least 1)
            delay: Seconds to wait between attempts
            sleep: Sleep function, replaceable in tests
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.delay = delay
        self.sleep = sleep
    
    def call(
        self,
        func: Callable[[], T],
        retry_on: Tuple[Type[BaseException], ...] = (Exception,),
        description: str = "operation"
    ) -> T:
        """
        Call func until it succeeds or attempts run out.
        
        Returns:
            The value returned by func
            
        Raises:
            The last exception raised by func once all attempts failed
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                return func()
            except retry_on as e:
                if attempt == self.max_attempts:
                    logger.error(f"{description} failed after {attempt} attempts: {e}")
                    raise
                logger.warning(
                    f"{description} failed (attempt {attempt}/{self.max_attempts}): {e}; "
                    f"retrying in {self.delay}s"
                )
                self.sleep(self.delay)
