"""Output renderers for record sets: JSON, YAML, CSV, PSV and tables."""

from __future__ import annotations

import csv
import json
import os
import stat
import sys
import tempfile
from abc import ABC, abstractmethod
from contextlib import contextmanager, suppress
from enum import Enum
from pathlib import Path
from typing import Any, Iterator, Optional, TextIO, Union

import yaml
from rich import box
from rich.cells import cell_len, set_cell_size
from rich.console import Console
from rich.table import Table
from rich.text import Text

from ..errors import RenderIOError, UnsupportedFormat
from ..models.records import RecordSet

Sink = Union[None, str, Path, TextIO]

ELLIPSIS = "…"
DEFAULT_MAX_CELL_WIDTH = 40


class OutputFormat(str, Enum):
    """Supported output formats."""
    JSON = "json"
    YAML = "yaml"
    CSV = "csv"
    PSV = "psv"
    TABLE = "table"


class Renderer(ABC):
    """Serializes a RecordSet to a text stream."""

    name: str = ""

    @abstractmethod
    def render(self, record_set: RecordSet, stream: TextIO) -> None:
        """Write ``record_set`` to ``stream``."""


class JsonRenderer(Renderer):
    name = OutputFormat.JSON.value

    def render(self, record_set: RecordSet, stream: TextIO) -> None:
        stream.write(json.dumps(record_set.to_list(), indent=2, ensure_ascii=False, default=_json_default))
        stream.write("\n")


class YamlRenderer(Renderer):
    name = OutputFormat.YAML.value

    def render(self, record_set: RecordSet, stream: TextIO) -> None:
        yaml.safe_dump(
            record_set.to_list(),
            stream,
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )


class DelimitedRenderer(Renderer):
    """Delimited text with a header row.

    Nested values are written as compact JSON; ``None`` is an empty cell.
    """

    def __init__(self, name: str, delimiter: str):
        self.name = name
        self.delimiter = delimiter

    def render(self, record_set: RecordSet, stream: TextIO) -> None:
        fields = record_set.fields()
        writer = csv.writer(stream, delimiter=self.delimiter, lineterminator="\n")
        if fields:
            writer.writerow(fields)
        for record in record_set:
            writer.writerow([cell_text(record.get(name)) for name in fields])


class TableRenderer(Renderer):
    """Fixed-width text table.

    Cells wider than ``max_width`` are cut and end in an ellipsis. Columns
    holding only numbers are right-aligned.
    """

    name = OutputFormat.TABLE.value

    def __init__(self, max_width: int = DEFAULT_MAX_CELL_WIDTH):
        if max_width < 2:
            raise ValueError("max_width must be at least 2")
        self.max_width = max_width

    def render(self, record_set: RecordSet, stream: TextIO) -> None:
        fields = record_set.fields()
        if not record_set.records or not fields:
            stream.write("(no results)\n")
            return

        rows = [
            [truncate(cell_text(record.get(name)).replace("\n", " "), self.max_width) for name in fields]
            for record in record_set
        ]
        widths = [
            max([cell_len(name)] + [cell_len(row[i]) for row in rows])
            for i, name in enumerate(fields)
        ]

        table = Table(box=box.SQUARE, show_header=True, header_style=None, highlight=False)
        for i, name in enumerate(fields):
            numeric = is_numeric_column(record_set, name)
            table.add_column(
                Text(name),
                justify="right" if numeric else "left",
                no_wrap=True,
                min_width=widths[i],
                max_width=widths[i],
            )
        for row in rows:
            table.add_row(*(Text(cell) for cell in row))

        # Wide enough that rich never shrinks a column
        width = sum(widths) + 3 * len(fields) + 1
        console = Console(
            file=stream,
            width=width,
            color_system=None,
            force_terminal=False,
            highlight=False,
            emoji=False,
            soft_wrap=False,
        )
        console.print(table)


RENDERERS: dict[str, Renderer] = {
    OutputFormat.JSON.value: JsonRenderer(),
    OutputFormat.YAML.value: YamlRenderer(),
    OutputFormat.CSV.value: DelimitedRenderer(OutputFormat.CSV.value, ","),
    OutputFormat.PSV.value: DelimitedRenderer(OutputFormat.PSV.value, "|"),
    OutputFormat.TABLE.value: TableRenderer(),
}


def get_renderer(output_format: Union[str, OutputFormat]) -> Renderer:
    """Look up the renderer for a format name (case-insensitive)."""
    name = output_format.value if isinstance(output_format, OutputFormat) else str(output_format or "")
    renderer = RENDERERS.get(name.strip().lower())
    if renderer is None:
        raise UnsupportedFormat(name, tuple(RENDERERS))
    return renderer


def render(
    record_set: RecordSet,
    output_format: Union[str, OutputFormat],
    sink: Sink = None,
    renderer: Optional[Renderer] = None,
) -> None:
    """Render a record set to stdout, a stream or a file path.

    Args:
        record_set: Rows to write.
        output_format: Format name or ``OutputFormat``.
        sink: ``None`` for stdout, a writable text stream, or a path.
        renderer: Explicit renderer, overriding the registry lookup.
    """
    renderer = renderer or get_renderer(output_format)
    path = Path(sink) if isinstance(sink, (str, Path)) else None
    try:
        with open_sink(sink) as stream:
            renderer.render(record_set, stream)
    except OSError as e:
        raise RenderIOError(path, e) from e


@contextmanager
def open_sink(sink: Sink = None) -> Iterator[TextIO]:
    """Yield a text stream for ``sink``.

    A path is written through a temporary file in the same directory and
    only moved into place once the block exits cleanly, so an interrupted
    or failed render never replaces an existing file with partial output.
    """
    if sink is None:
        yield sys.stdout
        sys.stdout.flush()
        return
    if not isinstance(sink, (str, Path)):
        yield sink
        sink.flush()
        return

    path = Path(sink)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
            yield handle
            handle.flush()
            os.fsync(handle.fileno())
        # mkstemp creates 0600; give the result the mode a plain open() would
        try:
            mode = stat.S_IMODE(os.stat(path).st_mode)
        except FileNotFoundError:
            mode = 0o666 & ~_current_umask()
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
    except BaseException:
        with suppress(FileNotFoundError):
            os.unlink(tmp_name)
        raise


def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


def cell_text(value: Any) -> str:
    """Render one value as a single delimited/table cell."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (bytes, bytearray)):
        return f"<binary {len(value)} bytes>"
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=_json_default)
    return str(value)


def truncate(text: str, max_width: int) -> str:
    """Fit ``text`` into ``max_width`` terminal cells, ending in an ellipsis if cut."""
    if cell_len(text) <= max_width:
        return text
    return set_cell_size(text, max_width - 1) + ELLIPSIS


def is_numeric_column(record_set: RecordSet, name: str) -> bool:
    """True if every non-null value of ``name`` is a number."""
    values = [r.get(name) for r in record_set if r.get(name) is not None]
    return bool(values) and all(
        isinstance(v, (int, float)) and not isinstance(v, bool) for v in values
    )


def _json_default(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return f"<binary {len(value)} bytes>"
    return str(value)
