"""
AuthorFeed Input Validators
===========================

Validation for author usernames and the feed URL template.
"""

import re
from urllib.parse import urlparse

from .exceptions import ValidationError, ConfigurationError, ErrorCode


class UsernameValidator:
    """Author username validation."""

    MAX_USERNAME_LENGTH = 100

    # Characters that would change the meaning of the feed URL
    FORBIDDEN_PATTERN = re.compile(r"[\s/?#%\\]")

    @classmethod
    def validate_username(cls, username: str) -> str:
        """Validate and normalize an author username.

        A single leading ``@`` is accepted and stripped.

        Args:
            username: Username to validate

        Returns:
            Normalized username

        Raises:
            ValidationError: If username is invalid
        """
        if not username or not isinstance(username, str):
            raise ValidationError(
                "Username is required",
                error_code=ErrorCode.VALIDATION_REQUIRED_FIELD,
                field_name="username",
            )

        username = username.strip()
        if username.startswith("@"):
            username = username[1:]

        if not username:
            raise ValidationError(
                "Username cannot be empty",
                error_code=ErrorCode.VALIDATION_REQUIRED_FIELD,
                field_name="username",
            )

        if len(username) > cls.MAX_USERNAME_LENGTH:
            raise ValidationError(
                f"Username cannot exceed {cls.MAX_USERNAME_LENGTH} characters",
                field_name="username",
            )

        if cls.FORBIDDEN_PATTERN.search(username):
            raise ValidationError(
                f"Username contains forbidden characters: {username!r}",
                field_name="username",
            )

        return username


class FeedUrlTemplateValidator:
    """Feed URL template validation."""

    ALLOWED_SCHEMES = {"http", "https"}
    PLACEHOLDER = "{username}"

    @classmethod
    def validate_template(cls, template: str) -> str:
        """Validate a feed URL template such as ``https://host/feed/@{username}``.

        Raises:
            ConfigurationError: If the template is unusable
        """
        if not template or cls.PLACEHOLDER not in template:
            raise ConfigurationError(
                f"Feed URL template must contain {cls.PLACEHOLDER}",
                config_key="feed.url_template",
            )

        parsed = urlparse(template.replace(cls.PLACEHOLDER, "author"))
        if parsed.scheme.lower() not in cls.ALLOWED_SCHEMES:
            raise ConfigurationError(
                f"Feed URL scheme must be {' or '.join(sorted(cls.ALLOWED_SCHEMES))}",
                config_key="feed.url_template",
            )
        if not parsed.netloc:
            raise ConfigurationError(
                "Feed URL template must include a hostname",
                config_key="feed.url_template",
            )

        return template
