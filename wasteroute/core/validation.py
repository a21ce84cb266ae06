"""
Input Validation Utilities

Validation and sanitization for admin-entered text: names, emails,
addresses, coordinates and free-text notes.
"""
import re


class ValidationPatterns:
    """Regex patterns for validation"""

    # Letters from any script, spaces, hyphens, apostrophes and dots
    NAME = re.compile(r"^[^\W\d_]+(?:[\s\-\'\.]+[^\W\d_]+)*\.?$")

    EMAIL = re.compile(r"^[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}$")

    # Script injection patterns
    XSS_PATTERNS = [
        re.compile(r"<script[^>]*>.*?</script>", re.IGNORECASE | re.DOTALL),
        re.compile(r"javascript:", re.IGNORECASE),
        re.compile(r"\bon\w+=", re.IGNORECASE),
        re.compile(r"<iframe", re.IGNORECASE),
    ]


class TextSanitizer:
    """Text sanitization for storage"""

    @staticmethod
    def sanitize(text: str, max_length: int = 1000) -> str:
        """
        Sanitize text input for safe storage.

        Trims whitespace, enforces max length, removes null bytes and
        collapses runs of spaces. Does NOT HTML escape.
        """
        if not text:
            return ""

        sanitized = text.strip()[:max_length]
        sanitized = sanitized.replace("\x00", "")
        return re.sub(r" +", " ", sanitized)

    @staticmethod
    def check_for_injection(text: str) -> tuple[bool, str | None]:
        """Return (is_safe, detected_pattern)"""
        if not text:
            return True, None

        for pattern in ValidationPatterns.XSS_PATTERNS:
            if pattern.search(text):
                return False, "XSS pattern detected"

        return True, None


class NameValidator:
    """Name validation utilities"""

    MIN_LENGTH = 2
    MAX_LENGTH = 100

    @staticmethod
    def validate(name: str) -> tuple[bool, str | None]:
        """
        Validate name format.

        Returns:
            Tuple of (is_valid, error_message)
        """
        if not name:
            return False, "Name is required"

        name = name.strip()

        if len(name) < NameValidator.MIN_LENGTH:
            return False, f"Name too short (minimum {NameValidator.MIN_LENGTH} characters)"

        if len(name) > NameValidator.MAX_LENGTH:
            return False, f"Name too long (maximum {NameValidator.MAX_LENGTH} characters)"

        if not ValidationPatterns.NAME.match(name):
            return False, "Name contains invalid characters"

        return True, None


class EmailValidator:

    MAX_LENGTH = 254

    @staticmethod
    def validate(email: str) -> bool:
        if not email or len(email) > EmailValidator.MAX_LENGTH:
            return False
        return bool(ValidationPatterns.EMAIL.match(email.strip()))

    @staticmethod
    def normalize(email: str) -> str:
        return email.strip().lower()


class AddressValidator:
    """Address validation utilities"""

    MIN_LENGTH = 3
    MAX_LENGTH = 300

    @staticmethod
    def validate(address: str) -> tuple[bool, str | None]:
        if not address:
            return False, "Address is required"

        address = address.strip()

        if len(address) < AddressValidator.MIN_LENGTH:
            return False, f"Address too short (minimum {AddressValidator.MIN_LENGTH} characters)"

        if len(address) > AddressValidator.MAX_LENGTH:
            return False, f"Address too long (maximum {AddressValidator.MAX_LENGTH} characters)"

        is_safe, reason = TextSanitizer.check_for_injection(address)
        if not is_safe:
            return False, reason

        return True, None


class CoordinateValidator:
    """WGS84 latitude/longitude range checks"""

    @staticmethod
    def validate(latitude: float, longitude: float) -> tuple[bool, str | None]:
        if not -90.0 <= latitude <= 90.0:
            return False, "Latitude must be between -90 and 90"
        if not -180.0 <= longitude <= 180.0:
            return False, "Longitude must be between -180 and 180"
        return True, None
