"""Error policies for directory operations."""

from enum import Enum


class ErrorPolicy(str, Enum):
    """How failures surface from :class:`~sftpsync.client.DirectorySync`."""

    STRICT = "strict"
    """Wrap failures in an operation-specific exception and raise it"""

    LENIENT = "lenient"
    """Log failures and return a sentinel (False, [], None)"""

    @property
    def raises(self) -> bool:
        """Whether failures are raised to the caller."""
        return self == ErrorPolicy.STRICT

    @classmethod
    def from_string(cls, value: str) -> "ErrorPolicy":
        """Parse a policy name (case-insensitive).

        Raises:
            ValueError: If the name is not a known policy
        """
        try:
            return cls(value.strip().lower())
        except ValueError:
            valid = ", ".join(p.value for p in cls)
            raise ValueError(
                f"Invalid error policy: {value!r}. Must be one of: {valid}"
            ) from None
