"""
Tests for code generation strategies.
"""
import string

import pytest

from shortlink_app.config import settings
from shortlink_app.services.short_code_strategies import (
    RandomShortCodeStrategy,
    VerificationCodeStrategy
)
from shortlink_app.services.short_code_factory import (
    ShortCodeFactory,
    ShortCodeStrategyType
)


class TestRandomStrategy:
    """Test random short code strategy"""

    def test_generates_configured_length(self):
        """Every code has exactly the configured length"""
        strategy = RandomShortCodeStrategy(length=7)

        for _ in range(500):
            assert len(strategy.generate()) == 7

    def test_only_alphabet_characters(self):
        """Every character comes from the configured alphabet"""
        alphabet = string.ascii_letters + string.digits
        strategy = RandomShortCodeStrategy(length=6, alphabet=alphabet)

        for _ in range(500):
            assert all(c in alphabet for c in strategy.generate())

    def test_custom_alphabet(self):
        """A restricted alphabet is honoured"""
        strategy = RandomShortCodeStrategy(length=12, alphabet="ab")

        code = strategy.generate()

        assert len(code) == 12
        assert set(code) <= {"a", "b"}

    def test_codes_vary(self):
        """Codes are random, not a fixed value"""
        strategy = RandomShortCodeStrategy(length=8)

        codes = {strategy.generate() for _ in range(200)}

        assert len(codes) > 190

    def test_rejects_invalid_configuration(self):
        with pytest.raises(ValueError):
            RandomShortCodeStrategy(length=0)
        with pytest.raises(ValueError):
            RandomShortCodeStrategy(length=6, alphabet="")


class TestVerificationStrategy:
    """Test numeric verification code strategy"""

    def test_digits_only(self):
        strategy = VerificationCodeStrategy(length=6)

        for _ in range(200):
            code = strategy.generate()
            assert len(code) == 6
            assert code.isdigit()


class TestShortCodeFactory:
    """Test strategy factory"""

    def setup_method(self):
        ShortCodeFactory.clear_instances()

    def test_creates_random_strategy_from_settings(self):
        """Default strategy uses configured length and alphabet"""
        strategy = ShortCodeFactory.create_strategy()

        assert isinstance(strategy, RandomShortCodeStrategy)
        assert strategy.length == settings.short_code_length
        assert strategy.alphabet == settings.short_code_alphabet

    def test_creates_verification_strategy(self):
        strategy = ShortCodeFactory.create_strategy(ShortCodeStrategyType.VERIFICATION)

        assert isinstance(strategy, VerificationCodeStrategy)
        assert strategy.length == settings.verification_code_length

    def test_returns_cached_instance(self):
        first = ShortCodeFactory.create_strategy(ShortCodeStrategyType.RANDOM)
        second = ShortCodeFactory.create_strategy(ShortCodeStrategyType.RANDOM)

        assert first is second
