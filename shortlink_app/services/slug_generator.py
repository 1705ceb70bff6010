"""
Slug generation strategies.
Uses Strategy Pattern so the allocator can be driven by any generator.
"""

import secrets
from abc import ABC, abstractmethod


MIN_GENERATED_LENGTH = 4
MAX_GENERATED_LENGTH = 10


class SlugGenerator(ABC):
    """Abstract base class for slug generators"""

    @abstractmethod
    def generate(self, length: int) -> str:
        """
        Generate a slug.

        Args:
            length: Number of characters, between 4 and 10

        Returns:
            A slug drawn from [A-Za-z0-9_-]. Uniqueness is NOT checked here.
        """
        pass

    @staticmethod
    def check_length(length: int) -> None:
        if not MIN_GENERATED_LENGTH <= length <= MAX_GENERATED_LENGTH:
            raise ValueError(
                f"Generated slug length must be between {MIN_GENERATED_LENGTH} "
                f"and {MAX_GENERATED_LENGTH}, got {length}"
            )


class RandomSlugGenerator(SlugGenerator):
    """
    Base64url slugs from a cryptographically strong byte source.

    Guessable slugs would let anyone enumerate live links, so the
    `random` module is not an option here.
    """

    def generate(self, length: int = 6) -> str:
        self.check_length(length)
        # token_urlsafe(n) encodes n random bytes, always >= n characters
        return secrets.token_urlsafe(length)[:length]
