"""Decoder for fixed 32-byte TDX price bar files."""

from __future__ import annotations

import os
import struct
from collections.abc import Iterator
from pathlib import Path
from typing import BinaryIO

from tdxbacktest.domain.bars import BAR_FORMATS, RECORD_SIZE, Bar
from tdxbacktest.errors import RecordDecodeError, UnsupportedFormatError
from tdxbacktest.stream.pipeline import Emit, Stream


def resolve_bar_format(extension: str) -> type[Bar]:
    """Return the bar variant for a file suffix such as `.day` or `.lc5`."""
    bar_type = BAR_FORMATS.get(extension.lower())
    if bar_type is None:
        raise UnsupportedFormatError(extension)
    return bar_type


def record_count(handle: BinaryIO) -> int:
    """Number of whole records in the file; a trailing partial record is ignored."""
    return os.fstat(handle.fileno()).st_size // RECORD_SIZE


def decode_records(handle: BinaryIO, bar_type: type[Bar], count: int) -> Iterator[Bar]:
    """Decode `count` consecutive records from the current file position."""
    for index in range(count):
        record = handle.read(RECORD_SIZE)
        if len(record) < RECORD_SIZE:
            raise RecordDecodeError(
                f"Record {index} truncated: expected {RECORD_SIZE} bytes, got {len(record)}"
            )
        try:
            bar = bar_type.from_record(record)
        except (struct.error, ValueError) as exc:
            raise RecordDecodeError(
                f"Record {index} is not a valid {bar_type.__name__}: {exc}"
            ) from exc
        yield bar


def read_tdx_file(path: str | Path) -> Stream[Bar]:
    """Open `path` and stream its bars in file order.

    Open and stat failures raise immediately. Format and decode failures end
    the returned stream early and are available through `Stream.error`.
    """
    file_path = Path(path)
    handle = file_path.open("rb")
    try:
        count = record_count(handle)
    except OSError:
        handle.close()
        raise
    extension = file_path.suffix

    def produce(source: BinaryIO, emit: Emit) -> None:
        bar_type = resolve_bar_format(extension)
        for bar in decode_records(source, bar_type, count):
            emit(bar)

    return Stream.from_resource(handle, produce, name=f"tdx:{file_path.name}")
