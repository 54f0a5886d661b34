# -*- coding: utf-8 -*-
"""
Created on Mon Oct  5 13:47:52 2026

@author: p-sik

SER header and offset table parsing.

``parse_header`` decodes the prologue and the single dimension descriptor,
``read_offset_tables`` the two offset arrays that follow. Both return
immutable values which are then passed explicitly to the slice decoder.
"""
from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .dtypes import (
    SER_BYTE_ORDER,
    SER_SERIES_ID,
    SER_VERSION_THRESHOLD,
    SER_DATA_1D,
    SER_DATA_2D,
    SER_TAG_TIME_POSITION,
    SER_SIGNATURE_DTYPE,
    SER_PROLOGUE_LEGACY_DTYPE,
    SER_PROLOGUE_DTYPE,
    SER_DIMENSION_DTYPE,
    SER_OFFSET_DTYPE,
)
from .errors import (
    InvalidByteOrderError,
    InvalidFormatSignatureError,
    UnsupportedDataKindError,
    UnsupportedDimensionCountError,
    DimensionMismatchError,
    StructuralCorruptionError,
)


@dataclass(frozen=True)
class DimensionDescriptor:
    """Series dimension of the file (one per file for image stacks)."""
    size: int
    calibration_offset: float
    calibration_delta: float
    calibration_element: int
    description: str
    unit: str


@dataclass(frozen=True)
class FileHeader:
    """
    Validated SER file header.

    Attributes
    ----------
    byte_order, series_id, version : int
        Signature words. ``version`` selects the width of
        ``offset_table_start`` (32-bit below 0x0220, 64-bit otherwise).
    data_type_id : int
        Always ``SER_DATA_2D`` for a parsed header.
    tag_type_id : int
        ``SER_TAG_TIME_POSITION`` or ``SER_TAG_TIME``.
    total_elements : int
        Length of both offset tables.
    valid_elements : int
        Number of elements actually written.
    offset_table_start : int
        Absolute position of the data offset table.
    n_dimensions : int
    dimension : DimensionDescriptor
    """
    byte_order: int
    series_id: int
    version: int
    data_type_id: int
    tag_type_id: int
    total_elements: int
    valid_elements: int
    offset_table_start: int
    n_dimensions: int
    dimension: DimensionDescriptor

    @property
    def legacy(self):
        return self.version < SER_VERSION_THRESHOLD

    @property
    def pos_tags(self):
        return self.tag_type_id == SER_TAG_TIME_POSITION


@dataclass(frozen=True, eq=False)
class OffsetTables:
    """Absolute positions of the data and tag record of every element."""
    data_offsets: np.ndarray
    tag_offsets: np.ndarray

    def __len__(self):
        return int(self.data_offsets.shape[0])

    def locate(self, index):
        """Return ``(data_offset, tag_offset)`` of 1-based ``index``."""
        n = len(self)
        if not isinstance(index, (int, np.integer)):
            raise TypeError("index must be an integer.")
        if not (1 <= index <= n):
            raise IndexError(f"index {index} out of range [1, {n}].")
        return int(self.data_offsets[index - 1]), int(self.tag_offsets[index - 1])


def parse_header(reader):
    """
    Decode and validate the SER header.

    Parameters
    ----------
    reader : SerReader.reader.ByteReader
        Reader positioned at offset 0.

    Returns
    -------
    FileHeader
        The reader is left at ``offset_table_start``.

    Raises
    ------
    InvalidByteOrderError, InvalidFormatSignatureError,
    UnsupportedDataKindError, UnsupportedDimensionCountError,
    DimensionMismatchError, StructuralCorruptionError, IoFailureError
    """
    sig = reader.read(SER_SIGNATURE_DTYPE)
    byte_order = int(sig["byte_order"])
    series_id = int(sig["series_id"])
    version = int(sig["version"])

    if byte_order != SER_BYTE_ORDER:
        raise InvalidByteOrderError(
            f"Wrong byte order 0x{byte_order:04X}, "
            f"expected 0x{SER_BYTE_ORDER:04X}.")
    if series_id != SER_SERIES_ID:
        raise InvalidFormatSignatureError(
            f"No ES Vision series data file (series id 0x{series_id:04X}).")

    # Width of the offset table position depends on the version
    if version < SER_VERSION_THRESHOLD:
        pro = reader.read(SER_PROLOGUE_LEGACY_DTYPE)
    else:
        pro = reader.read(SER_PROLOGUE_DTYPE)

    data_type_id = int(pro["data_type_id"])
    if data_type_id != SER_DATA_2D:
        kind = "1D data" if data_type_id == SER_DATA_1D \
            else f"data type 0x{data_type_id:04X}"
        raise UnsupportedDataKindError(
            f"{kind} not supported, only 2D image series can be read.")

    n_dimensions = int(pro["n_dimensions"])
    if n_dimensions != 1:
        raise UnsupportedDimensionCountError(
            f"Unsupported number of dimensions ({n_dimensions}). "
            "Only single images and image stacks are supported.")

    total = int(pro["total_elements"])
    valid = int(pro["valid_elements"])
    if valid > total:
        raise StructuralCorruptionError(
            f"{valid} valid elements declared but only {total} initialized.")

    dim = reader.read(SER_DIMENSION_DTYPE)
    size = int(dim["size"])
    if size != total:
        raise DimensionMismatchError(
            f"Dimension size {size} does not equal the total number of "
            f"elements {total}.")

    description = reader.read_string()
    unit = reader.read_string()

    offset_table_start = int(pro["offset_table_start"])
    pos = reader.tell()
    if pos != offset_table_start:
        raise StructuralCorruptionError(
            f"Header ends at byte {pos} but the offset table is declared at "
            f"byte {offset_table_start}.")

    dimension = DimensionDescriptor(
        size=size,
        calibration_offset=float(dim["calibration_offset"]),
        calibration_delta=float(dim["calibration_delta"]),
        calibration_element=int(dim["calibration_element"]),
        description=description,
        unit=unit,
    )

    return FileHeader(
        byte_order=byte_order,
        series_id=series_id,
        version=version,
        data_type_id=data_type_id,
        tag_type_id=int(pro["tag_type_id"]),
        total_elements=total,
        valid_elements=valid,
        offset_table_start=offset_table_start,
        n_dimensions=n_dimensions,
        dimension=dimension,
    )


def read_offset_tables(reader, header):
    """
    Read the data and tag offset tables.

    Both tables hold ``header.total_elements`` 64-bit offsets and are read in
    one sequential pass from the current position (``offset_table_start``
    after ``parse_header``). Offsets are not checked here; bad ones fail when
    the slice is decoded.
    """
    n = header.total_elements
    data_offsets = reader.read(SER_OFFSET_DTYPE, count=n)
    tag_offsets = reader.read(SER_OFFSET_DTYPE, count=n)
    return OffsetTables(data_offsets=data_offsets, tag_offsets=tag_offsets)


def header_summary(header):
    """Flat dict of the header, suitable for printing or JSON export."""
    dim = header.dimension
    return {
        "filetype": "ser",
        "version": f"0x{header.version:04X}",
        "legacy": header.legacy,
        "tag_type": "time+position" if header.pos_tags else "time",
        "total_elements": header.total_elements,
        "valid_elements": header.valid_elements,
        "offset_table_start": header.offset_table_start,
        "dimension_description": dim.description,
        "dimension_unit": dim.unit,
        "dimension_calibration_offset": dim.calibration_offset,
        "dimension_calibration_delta": dim.calibration_delta,
        "dimension_calibration_element": dim.calibration_element,
    }


def print_ser_header(header):
    """
    Pretty-print a FileHeader.

    Parameters
    ----------
    header : FileHeader

    Returns
    -------
    None
    """
    h = header_summary(header)

    print("[INFO] SER Header: ")
    print(" * Basic information: ")
    print(f"      filetype      : {h['filetype']}")
    print(f"      version       : {h['version']}"
          f"{'   (legacy offsets)' if h['legacy'] else ''}")
    print(f"      tag type      : {h['tag_type']}")
    print(f"      elements      : {h['valid_elements']} valid / "
          f"{h['total_elements']} total")
    print(" * Series dimension: ")
    print(f"      description   : {h['dimension_description']}")
    print(f"      unit          : {h['dimension_unit']}")
    print(f"      offset/delta  : {h['dimension_calibration_offset']}/"
          f"{h['dimension_calibration_delta']}")
