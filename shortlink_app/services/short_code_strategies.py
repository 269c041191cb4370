"""
Code generation strategies for the short link service.
Uses Strategy Pattern so short codes and verification codes share one interface.
"""

import random
import secrets
import string
from abc import ABC, abstractmethod


class ShortCodeStrategy(ABC):
    """Abstract base class for code generation strategies"""

    def __init__(self, length: int, alphabet: str):
        if length < 1:
            raise ValueError(f"Code length must be positive, got {length}")
        if not alphabet:
            raise ValueError("Code alphabet must not be empty")
        self.length = length
        self.alphabet = alphabet

    @abstractmethod
    def generate(self) -> str:
        """
        Generate a code of exactly `length` characters from `alphabet`.

        No uniqueness guarantee: callers check availability and retry.
        """
        pass


class RandomShortCodeStrategy(ShortCodeStrategy):
    """
    Random short code strategy.
    Draws each character uniformly from the alphabet.

    Short codes are public, so the fast non-cryptographic `random` module is
    enough here.
    """

    def __init__(self, length: int = 6, alphabet: str = string.ascii_letters + string.digits):
        super().__init__(length, alphabet)

    def generate(self) -> str:
        """Generate a random short code"""
        return ''.join(random.choice(self.alphabet) for _ in range(self.length))


class VerificationCodeStrategy(ShortCodeStrategy):
    """
    Numeric verification code strategy.

    Verification codes gate account actions, so characters come from
    `secrets` rather than `random`.
    """

    def __init__(self, length: int = 6, alphabet: str = string.digits):
        super().__init__(length, alphabet)

    def generate(self) -> str:
        """Generate a numeric verification code"""
        return ''.join(secrets.choice(self.alphabet) for _ in range(self.length))
