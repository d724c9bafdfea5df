"""
Base Service Foundation

Purpose
-------
Provides the foundational class for the async Animarc services. Services
orchestrate the pure engines and the persistence stores, enforce business
rules and raise domain exceptions.

Design Notes
------------
This base class provides:
- Structured logging with operation context
- Safe config access patterns
- Validation error wrapping
- Bounded retry of optimistic-lock conflicts

What this class does NOT do:
- Manage database transactions (the stores own that)
- Contain game-specific rules (the engines own those)

Usage
-----
    class PortalRaidService(BaseService):
        def __init__(self, config_manager, raid_store, user_store):
            super().__init__(config_manager, get_logger(__name__))
            self._raids = raid_store

        async def attack(self, user_id: str, ...):
            return await self.with_conflict_retry("raid.attack", lambda: ...)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, TypeVar

from animarc.core.exceptions import ConfigurationError
from animarc.modules.shared.constants import MAX_CONFLICT_RETRIES
from animarc.modules.shared.exceptions import ConcurrencyConflictError, ValidationError

if TYPE_CHECKING:
    from logging import Logger

    from animarc.core.config.config_manager import ConfigManager

T = TypeVar("T")


class BaseService:
    """
    Base class for all domain services.

    Args:
        config_manager: Balance configuration manager
        logger: Structured logger instance
    """

    def __init__(self, config_manager: ConfigManager, logger: Logger) -> None:
        self._config = config_manager
        self.log = logger
        self._max_conflict_retries = int(
            config_manager.get("persistence.max_conflict_retries", default=MAX_CONFLICT_RETRIES)
        )

    def get_config(
        self, key: str, default: Optional[Any] = None, required: bool = False
    ) -> Any:
        """
        Safely retrieve configuration value.

        Raises:
            ConfigurationError: If required=True and key is missing
        """
        value = self._config.get(key, default)
        if required and value is None:
            raise ConfigurationError(
                key, f"Required configuration key '{key}' is missing"
            )
        return value

    def log_operation(self, operation: str, **context: Any) -> None:
        self.log.info(
            f"Service operation: {operation}",
            extra={"operation": operation, **context},
        )

    def log_error(
        self,
        operation: str,
        error: Exception,
        **context: Any,
    ) -> None:
        self.log.error(
            f"Service error during {operation}: {str(error)}",
            extra={
                "operation": operation,
                "error_type": type(error).__name__,
                "error_message": str(error),
                **context,
            },
        )

    # =========================================================================
    # CONFLICT RETRY
    # =========================================================================

    async def with_conflict_retry(
        self,
        operation: str,
        action: Callable[[], Awaitable[T]],
        **context: Any,
    ) -> T:
        """
        Run ``action`` and re-run it on ConcurrencyConflictError.

        ``action`` must re-read the rows it writes on every call. After
        ``persistence.max_conflict_retries`` retries the last conflict is
        re-raised.
        """
        attempt = 0
        while True:
            try:
                return await action()
            except ConcurrencyConflictError as exc:
                if attempt >= self._max_conflict_retries:
                    self.log_error(operation, exc, retries=attempt, **context)
                    raise
                attempt += 1
                self.log.warning(
                    "Optimistic lock conflict, retrying with fresh state",
                    extra={"operation": operation, "retry": attempt, **context},
                )

    # =========================================================================
    # VALIDATION
    # =========================================================================

    def validate_positive_int(self, value: int, name: str) -> None:
        """
        Raises:
            ValidationError: If value is not positive
        """
        if not isinstance(value, int) or value <= 0:
            raise ValidationError(
                name, f"{name} must be a positive integer, got {value}"
            )

    def validate_non_negative_int(self, value: int, name: str) -> None:
        """
        Raises:
            ValidationError: If value is negative
        """
        if not isinstance(value, int) or value < 0:
            raise ValidationError(
                name, f"{name} must be a non-negative integer, got {value}"
            )

    def validate_user_id(self, user_id: str) -> None:
        if not isinstance(user_id, str) or not user_id.strip():
            raise ValidationError("user_id", "user_id must be a non-empty string")
