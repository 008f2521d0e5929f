# backend/app/services/base.py
"""
Base Service Pattern for the Parkspace platform.

Every service owns one session and runs each state transition inside
``transaction()``: the booking row lock, the conflict check and the write
commit together or not at all. Operations decorated with
``measure_operation`` report their duration and outcome to Prometheus.
"""

from contextlib import contextmanager
from functools import wraps
import logging
import time
from typing import Any, Callable, Iterator, Optional, TypeVar, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import ServiceException
from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

SLOW_OPERATION_SECONDS = 1.0


class BaseService:
    """Session holder with transaction scoping, logging and operation timing."""

    def __init__(self, db: Session):
        self.db = db
        self.logger = logging.getLogger(self.__class__.__name__)

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        Commit on success, roll back on any exception.

        Usage:
            with self.transaction():
                booking = self.booking_repository.get_for_update(booking_id)
                booking.status = BookingStatus.ACCEPTED.value

        SQLAlchemy errors surface as ServiceException; domain errors
        propagate unchanged.
        """
        try:
            yield self.db
            self.db.commit()
        except SQLAlchemyError as e:
            self.logger.error(f"Transaction failed: {str(e)}")
            self.db.rollback()
            raise ServiceException(f"Database operation failed: {str(e)}")
        except Exception as e:
            self.logger.debug(f"Transaction rolled back: {type(e).__name__}: {str(e)}")
            self.db.rollback()
            raise

    @staticmethod
    def measure_operation(operation_name: str) -> Callable[[F], F]:
        """
        Time a service method and record it as a Prometheus service operation.

        Usage:
            @BaseService.measure_operation("create_booking")
            def create_booking(self, client_id, booking_data):
                ...
        """

        def decorator(func: F) -> F:
            @wraps(func)
            def wrapper(self, *args, **kwargs):
                start_time = time.time()
                error_type: Optional[str] = None
                try:
                    return func(self, *args, **kwargs)
                except Exception as e:
                    error_type = type(e).__name__
                    raise
                finally:
                    self._report_operation(operation_name, time.time() - start_time, error_type)

            return cast(F, wrapper)

        return decorator

    def _report_operation(self, operation: str, elapsed: float, error_type: Optional[str]) -> None:
        if elapsed > SLOW_OPERATION_SECONDS:
            self.logger.warning(f"Slow operation detected: {operation} took {elapsed:.2f}s")
        prometheus_metrics.record_service_operation(
            service=self.__class__.__name__,
            operation=operation,
            duration=elapsed,
            status="success" if error_type is None else "error",
            error_type=error_type,
        )

    def log_operation(self, operation: str, **context):
        """Structured info log for a completed operation."""
        self.logger.info(f"Operation: {operation}", extra={"operation": operation, **context})
