"""
Factory for creating code generation strategies.
Uses caching to avoid creating multiple instances.
"""

from enum import Enum
from shortlink_app.services.short_code_strategies import (
    ShortCodeStrategy,
    RandomShortCodeStrategy,
    VerificationCodeStrategy
)
from shortlink_app.config import settings


class ShortCodeStrategyType(Enum):
    """Available code generation strategies"""
    RANDOM = "random"
    VERIFICATION = "verification"


class ShortCodeFactory:
    """Factory for creating code generation strategies with caching"""

    _instances = {}  # Cache for strategy instances

    @classmethod
    def create_strategy(
        cls,
        strategy_type: ShortCodeStrategyType = ShortCodeStrategyType.RANDOM
    ) -> ShortCodeStrategy:
        """
        Create or return cached code generation strategy.

        Args:
            strategy_type: Type of strategy to create.
                          Defaults to random short codes.

        Returns:
            A cached instance of a ShortCodeStrategy

        Raises:
            ValueError: If strategy_type is unknown
        """
        # Return cached instance if exists
        if strategy_type in cls._instances:
            return cls._instances[strategy_type]

        # Create new instance from settings
        if strategy_type == ShortCodeStrategyType.RANDOM:
            instance = RandomShortCodeStrategy(
                length=settings.short_code_length,
                alphabet=settings.short_code_alphabet
            )
        elif strategy_type == ShortCodeStrategyType.VERIFICATION:
            instance = VerificationCodeStrategy(
                length=settings.verification_code_length
            )
        else:
            raise ValueError(f"Unknown strategy type: {strategy_type}")

        # Cache the instance
        cls._instances[strategy_type] = instance
        return instance

    @classmethod
    def clear_instances(cls):
        """Clear cached instances (for testing)"""
        cls._instances.clear()
