"""Slug generator service.

Generates URL-friendly slugs for client organizations.
"""

import re
import time
import unicodedata


class SlugGenerator:
    """Generate URL-friendly slugs.

    Slug rules:
    - Lowercase ASCII letters and digits
    - Runs of any other characters collapse to a single hyphen
    - No leading or trailing hyphens
    """

    FALLBACK = "client"

    @classmethod
    def generate(cls, text: str) -> str:
        """Generate a slug from text.

        Args:
            text: The text to convert to a slug (e.g., organization name).

        Returns:
            URL-friendly slug.

        Examples:
            >>> SlugGenerator.generate("Acme Corp")
            'acme-corp'
            >>> SlugGenerator.generate("  Test & Company, Inc. ")
            'test-company-inc'
        """
        normalized = unicodedata.normalize("NFKD", text)
        ascii_text = normalized.encode("ascii", "ignore").decode("ascii")

        slug = re.sub(r"[^a-z0-9]+", "-", ascii_text.lower().strip())
        return slug.strip("-")

    @classmethod
    def generate_unique(cls, text: str, suffix: str | None = None) -> str:
        """Generate a slug with a uniqueness suffix.

        The suffix defaults to the current time in milliseconds.

        Examples:
            >>> SlugGenerator.generate_unique("Acme Corp", suffix="1700000000000")
            'acme-corp-1700000000000'
        """
        if suffix is None:
            suffix = str(time.time_ns() // 1_000_000)
        base = cls.generate(text) or cls.FALLBACK
        return cls.generate(f"{base}-{suffix}")
