r"""Classification of failures raised while executing a request.

Process-fatal conditions always propagate. Every other exception raised
by the transport is captured into the ``ResponseEnvelope``.
"""

from __future__ import annotations

__all__ = ["FATAL_EXCEPTIONS", "is_fatal"]

# Exceptions that can never be folded into a result value, in addition to
# every BaseException that is not an Exception (KeyboardInterrupt,
# SystemExit, GeneratorExit)
FATAL_EXCEPTIONS: tuple[type[BaseException], ...] = (MemoryError, RecursionError)


def is_fatal(exc: BaseException) -> bool:
    """Indicate whether ``exc`` must always propagate.

    Args:
        exc: The exception to classify.

    Returns:
        ``True`` for process-fatal conditions, ``False`` for failures that
        can be captured.

    Example:
        ```pycon
        >>> import httpx
        >>> from webexchange.utils.exceptions import is_fatal
        >>> is_fatal(MemoryError())
        True
        >>> is_fatal(KeyboardInterrupt())
        True
        >>> is_fatal(httpx.ConnectError("refused"))
        False

        ```
    """
    return not isinstance(exc, Exception) or isinstance(exc, FATAL_EXCEPTIONS)

