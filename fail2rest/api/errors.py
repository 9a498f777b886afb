"""Translation of fail2ban-client adapter errors into API errors."""

from collections.abc import Iterator
from contextlib import contextmanager

from fail2rest.core.exceptions import (
    ElevationRequiredError,
    NotFoundError,
    TimedOutError,
    UpstreamError,
    ValidationError,
)
from fail2rest.services.fail2ban import (
    Fail2banError,
    Fail2banPermissionError,
    Fail2banTimeoutError,
    InvalidArgumentError,
    JailNotFoundError,
)


@contextmanager
def fail2ban_errors(action: str) -> Iterator[None]:
    """Re-raise adapter errors as the matching API error.

    `action` completes the message, e.g. "ban IP" -> "Failed to ban IP: ...".
    The captured fail2ban-client output is kept in the message.
    """
    try:
        yield
    except InvalidArgumentError as e:
        raise ValidationError(str(e)) from e
    except JailNotFoundError as e:
        raise NotFoundError(f"Jail not found or error: {e.output or e}") from e
    except Fail2banPermissionError as e:
        raise ElevationRequiredError(f"Failed to {action}: {e}") from e
    except Fail2banTimeoutError as e:
        raise TimedOutError(f"Failed to {action}: {e}") from e
    except Fail2banError as e:
        raise UpstreamError(f"Failed to {action}: {e}") from e
