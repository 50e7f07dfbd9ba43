"""Exception hierarchy for the KRPC codec."""

from __future__ import annotations


class KRPCError(Exception):
    """
    Base exception for all KRPC codec errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


class KRPCDecodeError(KRPCError):
    """
    Base class for errors raised while decoding untrusted input.

    Every decode error records the trail of dictionary keys (or list positions)
    traversed before the failure, outermost first. Sub-decoders raise with an
    empty trail and each enclosing decoder prepends its own key on the way out.

    Attributes:
        detail: Description of what went wrong, without the context trail.
        context: Field names from the outermost key inward.
    """

    def __init__(self, detail: str, *, context: tuple[str, ...] = ()) -> None:
        self.detail = detail
        self.context = context
        super().__init__(self._format())

    def _format(self) -> str:
        if not self.context:
            return self.detail
        return f"{'.'.join(self.context)}: {self.detail}"

    def add_context(self, field: str) -> None:
        """Prepend `field` to the context trail and refresh the message."""
        self.context = (field, *self.context)
        self.message = self._format()
        self.args = (self.message,)


class MissingFieldError(KRPCDecodeError):
    """
    Raised when a required key is absent from a dictionary or list position.

    Attributes:
        field: Wire name of the missing field (e.g. "t", "target").
    """

    def __init__(self, field: str, *, context: tuple[str, ...] = ()) -> None:
        self.field = field
        super().__init__(f"missing required field '{field}'", context=context)


class MalformedError(KRPCDecodeError):
    """
    Raised when a present value has the wrong shape or an out-of-range value.

    Covers wrong byte lengths of fixed-width fields, unknown enumeration
    strings, wrong bencode kinds, and invalid bencode.

    Attributes:
        reason: Why the value was rejected.
    """

    def __init__(self, reason: str, *, context: tuple[str, ...] = ()) -> None:
        self.reason = reason
        super().__init__(reason, context=context)


class MessageEncodingError(KRPCError):
    """Raised when a value cannot be encoded as a KRPC message."""
