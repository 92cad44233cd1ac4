"""Per-error-kind dispositions for connection handling failures."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum


class ErrorKind(str, Enum):
    PARSE = "parse"
    EMPTY = "empty"
    TIMEOUT = "timeout"
    IO = "io"


class Disposition(str, Enum):
    FATAL = "fatal"
    DROP = "drop"
    RESPOND = "respond"


RESPONDABLE_KINDS = frozenset({ErrorKind.PARSE, ErrorKind.TIMEOUT})

HARDENED_DISPOSITIONS: dict[ErrorKind, Disposition] = {
    ErrorKind.PARSE: Disposition.RESPOND,
    ErrorKind.EMPTY: Disposition.DROP,
    ErrorKind.TIMEOUT: Disposition.RESPOND,
    ErrorKind.IO: Disposition.DROP,
}

STRICT_DISPOSITIONS: dict[ErrorKind, Disposition] = {kind: Disposition.FATAL for kind in ErrorKind}


@dataclass(frozen=True, slots=True)
class ErrorPolicy:
    """Decides whether a failed connection is fatal, dropped, or answered."""

    name: str = "hardened"
    dispositions: Mapping[ErrorKind, Disposition] = field(
        default_factory=lambda: dict(HARDENED_DISPOSITIONS)
    )

    def __post_init__(self) -> None:
        missing = [kind.value for kind in ErrorKind if kind not in self.dispositions]
        if missing:
            raise ValueError(f"error policy is missing kinds: {', '.join(missing)}")
        for kind, disposition in self.dispositions.items():
            if disposition is Disposition.RESPOND and kind not in RESPONDABLE_KINDS:
                raise ValueError(f"'{kind.value}' errors cannot be answered with a response")

    @classmethod
    def hardened(cls) -> "ErrorPolicy":
        return cls(name="hardened", dispositions=dict(HARDENED_DISPOSITIONS))

    @classmethod
    def strict(cls) -> "ErrorPolicy":
        return cls(name="strict", dispositions=dict(STRICT_DISPOSITIONS))

    @classmethod
    def from_value(cls, value: object) -> "ErrorPolicy":
        """Build a policy from a preset name or a mapping of kind overrides.

        Overrides are applied on top of the hardened preset, so
        ``{"parse": "fatal"}`` only changes how parse failures are treated.
        """
        if isinstance(value, str):
            if value == "hardened":
                return cls.hardened()
            if value == "strict":
                return cls.strict()
            raise ValueError(f"unknown error policy preset: {value!r}")

        if isinstance(value, Mapping):
            dispositions = dict(HARDENED_DISPOSITIONS)
            for raw_kind, raw_disposition in value.items():
                try:
                    kind = ErrorKind(raw_kind)
                except ValueError as exc:
                    raise ValueError(f"unknown error kind: {raw_kind!r}") from exc
                try:
                    disposition = Disposition(raw_disposition)
                except ValueError as exc:
                    raise ValueError(f"unknown disposition: {raw_disposition!r}") from exc
                dispositions[kind] = disposition
            return cls(name="custom", dispositions=dispositions)

        raise ValueError("error policy must be a preset name or an object")

    def disposition_for(self, kind: ErrorKind) -> Disposition:
        return self.dispositions[kind]
