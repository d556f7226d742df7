"""Errors raised by the WordPress REST layer."""


class WordPressError(Exception):
    """Raised when a WordPress REST call fails.

    Attributes:
        code: Stable error code for structured error handling.
        status_code: HTTP status to surface, when one applies.
    """

    def __init__(
        self,
        message: str,
        code: str = "wordpress_error",
        status_code: int | None = None,
    ) -> None:
        """Initialize WordPressError.

        Args:
            message: Error description.
            code: Error code for structured error handling.
            status_code: Upstream or suggested HTTP status.
        """
        super().__init__(message)
        self.code = code
        self.status_code = status_code


class ElementorError(Exception):
    """Raised when an Elementor layout cannot be read or updated."""

    def __init__(
        self,
        message: str,
        code: str = "elementor_error",
        status_code: int = 400,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.status_code = status_code


__all__ = ["ElementorError", "WordPressError"]
