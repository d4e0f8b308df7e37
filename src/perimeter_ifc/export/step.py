"""ISO-10303-21 (STEP physical file) writer.

Entities are appended through one generic path, :meth:`StepWriter.add_entity`,
and receive sequential ids starting at 1. Parameters are plain Python values
plus a few tagged wrappers:

- ``None`` → ``$``, ``DERIVED`` → ``*``
- ``bool`` → ``.T.`` / ``.F.``, ``int`` → ``42``, ``float`` → ``42.`` / ``0.5``
- ``str`` → ``'O''Brien'`` (quotes and backslashes doubled, non-ASCII as ``\\X2\\``)
- :class:`Handle` → ``#12``, :class:`StepEnum` → ``.ELEMENT.``
- ``list`` / ``tuple`` → ``(a,b,c)``
- :class:`Raw` → verbatim. Only for typed measures such as
  ``IFCPOSITIVELENGTHMEASURE(240.)``; build them with :func:`typed_value`.

The writer does not check that references resolve while entities are added.
:meth:`StepWriter.validate_references` runs that check on demand.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Union

from perimeter_ifc.errors import DanglingReferenceError, StepParseError

logger = logging.getLogger(__name__)

DEFAULT_PRECISION = 6

VIEW_DEFINITIONS = {
    "IFC4": "ViewDefinition [ReferenceView_V1.2]",
}


@dataclass(frozen=True)
class Handle:
    """Reference to a written entity."""

    id: int

    def __str__(self) -> str:
        return f"#{self.id}"


@dataclass(frozen=True)
class StepEnum:
    """Enumeration value, written as ``.NAME.``."""

    name: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", self.name.upper())


@dataclass(frozen=True)
class Raw:
    """Pre-formatted parameter text. Bypasses all formatting and validation."""

    text: str


class _Derived:
    _instance: _Derived | None = None

    def __new__(cls) -> _Derived:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "DERIVED"


DERIVED = _Derived()

StepParameter = Union[None, bool, int, float, str, Handle, StepEnum, Raw, _Derived, Sequence[Any]]


@dataclass
class StepEntity:
    """One DATA record."""

    id: int
    type: str
    params: tuple[StepParameter, ...]


@dataclass
class HeaderOptions:
    """Values for the HEADER section."""

    name: str
    author: str = ""
    organization: str = ""
    application: str = ""
    schema: str = "IFC4"
    authorization: str = ""
    timestamp: datetime | None = None


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------

def format_number(value: float, precision: int = DEFAULT_PRECISION) -> str:
    """Fixed precision, trailing zeros trimmed, decimal point kept."""
    if not math.isfinite(value):
        raise ValueError(f"Cannot write non-finite number {value!r}")
    text = f"{value:.{precision}f}".rstrip("0")
    if text == "-0.":
        text = "0."
    return text


def format_string(value: str) -> str:
    """Quote a string, doubling ``'`` and ``\\`` and encoding non-ASCII."""
    out: list[str] = []
    for ch in value:
        if ch == "'":
            out.append("''")
        elif ch == "\\":
            out.append("\\\\")
        elif " " <= ch <= "~":
            out.append(ch)
        elif ord(ch) > 0xFFFF:
            out.append(f"\\X4\\{ord(ch):08X}\\X0\\")
        else:
            out.append(f"\\X2\\{ord(ch):04X}\\X0\\")
    return "'" + "".join(out) + "'"


def format_parameter(value: StepParameter, precision: int = DEFAULT_PRECISION) -> str:
    """Format one parameter value (recursively for lists)."""
    if value is None:
        return "$"
    if value is DERIVED:
        return "*"
    if isinstance(value, bool):
        return ".T." if value else ".F."
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return format_number(value, precision)
    if isinstance(value, str):
        return format_string(value)
    if isinstance(value, Handle):
        return f"#{value.id}"
    if isinstance(value, StepEnum):
        return f".{value.name}."
    if isinstance(value, Raw):
        return value.text
    if isinstance(value, (list, tuple)):
        return "(" + ",".join(format_parameter(v, precision) for v in value) + ")"
    raise TypeError(f"Unsupported STEP parameter type: {type(value).__name__}")


def typed_value(type_name: str, value: StepParameter, precision: int = DEFAULT_PRECISION) -> Raw:
    """Typed measure wrapper, e.g. ``IFCLABEL('Door')``."""
    return Raw(f"{type_name.upper()}({format_parameter(value, precision)})")


# ---------------------------------------------------------------------------
# Writer
# ---------------------------------------------------------------------------

@dataclass
class StepWriter:
    """Append-only entity list for one export."""

    precision: int = DEFAULT_PRECISION
    _entities: list[StepEntity] = field(default_factory=list, init=False, repr=False)

    def add_entity(self, type_name: str, params: Sequence[StepParameter]) -> Handle:
        """Append a record and return its handle."""
        entity = StepEntity(
            id=len(self._entities) + 1,
            type=type_name.upper(),
            params=tuple(params),
        )
        self._entities.append(entity)
        return Handle(entity.id)

    @property
    def entities(self) -> tuple[StepEntity, ...]:
        return tuple(self._entities)

    def __len__(self) -> int:
        return len(self._entities)

    def count(self, type_name: str) -> int:
        type_name = type_name.upper()
        return sum(1 for e in self._entities if e.type == type_name)

    def format_entity(self, entity: StepEntity) -> str:
        params = ",".join(format_parameter(p, self.precision) for p in entity.params)
        return f"#{entity.id}={entity.type}({params});"

    def build(self, header: HeaderOptions) -> str:
        """Render the complete physical file."""
        schema = header.schema.upper()
        if schema not in VIEW_DEFINITIONS:
            raise ValueError(f"Unsupported schema {schema!r}")
        view = VIEW_DEFINITIONS[schema]
        timestamp = (header.timestamp or datetime.now()).replace(microsecond=0)
        file_name = format_parameter([
            header.name,
            timestamp.isoformat(),
            [header.author],
            [header.organization],
            header.application,
            header.application,
            header.authorization,
        ])

        lines = [
            "ISO-10303-21;",
            "HEADER;",
            f"FILE_DESCRIPTION({format_parameter([view])},'2;1');",
            f"FILE_NAME{file_name};",
            f"FILE_SCHEMA({format_parameter([schema])});",
            "ENDSEC;",
            "DATA;",
        ]
        lines.extend(self.format_entity(e) for e in self._entities)
        lines.extend(["ENDSEC;", "END-ISO-10303-21;"])
        logger.debug("Built STEP file with %d entities", len(self._entities))
        return "\n".join(lines) + "\n"

    def find_dangling_references(self) -> list[tuple[int, int]]:
        """(source id, missing id) for every reference without a record."""
        known = {e.id for e in self._entities}
        dangling: list[tuple[int, int]] = []
        for entity in self._entities:
            for ref in _references(entity.params):
                if ref not in known:
                    dangling.append((entity.id, ref))
        return dangling

    def validate_references(self) -> None:
        """Raise DanglingReferenceError if any reference is unresolved."""
        dangling = self.find_dangling_references()
        if dangling:
            raise DanglingReferenceError(dangling)


def _references(params: Sequence[Any]) -> Iterator[int]:
    for p in params:
        if isinstance(p, Handle):
            yield p.id
        elif isinstance(p, (list, tuple)):
            yield from _references(p)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

_NUMBER = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")
_KEYWORD = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_ENUM = re.compile(r"\.([A-Za-z0-9_]+)\.")
_REF = re.compile(r"#(\d+)")
_RECORD = re.compile(r"(\d+)\s*=\s*([A-Za-z0-9_]+)")


class _Parser:
    def __init__(self, text: str, pos: int = 0) -> None:
        self.text = text
        self.pos = pos

    def error(self, message: str) -> StepParseError:
        snippet = self.text[self.pos:self.pos + 20]
        return StepParseError(f"{message} at offset {self.pos}: {snippet!r}")

    def skip_ws(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1

    def peek(self) -> str:
        self.skip_ws()
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def expect(self, token: str) -> None:
        self.skip_ws()
        if not self.text.startswith(token, self.pos):
            raise self.error(f"Expected {token!r}")
        self.pos += len(token)

    def value(self) -> Any:
        ch = self.peek()
        if ch == "":
            raise self.error("Unexpected end of input")
        if ch == "$":
            self.pos += 1
            return None
        if ch == "*":
            self.pos += 1
            return DERIVED
        if ch == "(":
            return self.list()
        if ch == "'":
            return self.string()
        if ch == "#":
            m = _REF.match(self.text, self.pos)
            if not m:
                raise self.error("Malformed reference")
            self.pos = m.end()
            return Handle(int(m.group(1)))
        if ch == ".":
            m = _ENUM.match(self.text, self.pos)
            if m:
                self.pos = m.end()
                name = m.group(1).upper()
                if name == "T":
                    return True
                if name == "F":
                    return False
                return StepEnum(name)
        m = _KEYWORD.match(self.text, self.pos)
        if m:
            start = self.pos
            self.pos = m.end()
            self.list()
            return Raw(self.text[start:self.pos])
        m = _NUMBER.match(self.text, self.pos)
        if m:
            self.pos = m.end()
            token = m.group(0)
            if "." in token or "e" in token or "E" in token:
                return float(token)
            return int(token)
        raise self.error("Unrecognised parameter")

    def list(self) -> list[Any]:
        self.expect("(")
        items: list[Any] = []
        if self.peek() == ")":
            self.pos += 1
            return items
        while True:
            items.append(self.value())
            ch = self.peek()
            self.pos += 1
            if ch == ")":
                return items
            if ch != ",":
                self.pos -= 1
                raise self.error("Expected ',' or ')'")

    def string(self) -> str:
        self.expect("'")
        text = self.text
        out: list[str] = []
        while True:
            if self.pos >= len(text):
                raise self.error("Unterminated string")
            ch = text[self.pos]
            if ch == "'":
                if text.startswith("''", self.pos):
                    out.append("'")
                    self.pos += 2
                    continue
                self.pos += 1
                return "".join(out)
            if ch == "\\":
                out.append(self.escape())
                continue
            out.append(ch)
            self.pos += 1

    def escape(self) -> str:
        text = self.text
        if text.startswith("\\\\", self.pos):
            self.pos += 2
            return "\\"
        for marker, width in (("\\X2\\", 4), ("\\X4\\", 8)):
            if text.startswith(marker, self.pos):
                end = text.find("\\X0\\", self.pos)
                if end < 0:
                    raise self.error("Unterminated \\X2\\ block")
                hex_digits = text[self.pos + len(marker):end]
                self.pos = end + 4
                return "".join(
                    chr(int(hex_digits[i:i + width], 16))
                    for i in range(0, len(hex_digits), width)
                )
        if text.startswith("\\X\\", self.pos):
            code = text[self.pos + 3:self.pos + 5]
            self.pos += 5
            return chr(int(code, 16))
        self.pos += 1
        return "\\"


def parse_parameter(text: str) -> Any:
    """Decode one formatted parameter value."""
    parser = _Parser(text)
    value = parser.value()
    if parser.peek():
        raise parser.error("Trailing characters")
    return value


def iter_records(text: str) -> Iterator[tuple[int, str, list[Any]]]:
    """Yield ``(id, TYPE, params)`` for every record of the DATA section."""
    start = text.find("DATA;")
    if start < 0:
        raise StepParseError("No DATA section")
    parser = _Parser(text, start + len("DATA;"))
    while True:
        ch = parser.peek()
        if ch == "" or text.startswith("ENDSEC;", parser.pos):
            return
        parser.expect("#")
        m = _RECORD.match(text, parser.pos)
        if not m:
            raise parser.error("Malformed record")
        parser.pos = m.end()
        params = parser.list()
        parser.expect(";")
        yield int(m.group(1)), m.group(2).upper(), params


def find_dangling_references_in_text(text: str) -> list[tuple[int, int]]:
    """(source id, missing id) for every unresolved reference in a file."""
    records = list(iter_records(text))
    known = {rid for rid, _, _ in records}
    return [
        (rid, ref)
        for rid, _, params in records
        for ref in _references(params)
        if ref not in known
    ]
