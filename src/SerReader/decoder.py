# -*- coding: utf-8 -*-
"""
Created on Tue Oct  6 11:21:36 2026

@author: p-sik

Decoding of single slices (one 2D image of the series).

``decode_slice`` resolves the metadata of one element: calibration, pixel
type, array size, pixel position in the file and the acquisition tag.
``read_pixels`` then loads the pixels themselves as a NumPy array.
"""
from __future__ import annotations

import datetime
from dataclasses import dataclass

import numpy as np

from .dtypes import (
    SER_DATA_RECORD_DTYPE,
    SER_TAG_RECORD_DTYPE,
    SER_PIXEL_DTYPE_MAP,
    SER_UNIT_LABELS,
    SER_ARBITRARY_UNIT,
)
from .errors import UnsupportedPixelTypeError, IoFailureError


TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass(frozen=True)
class SliceDataRecord:
    cal_offset_x: float
    cal_delta_x: float
    cal_element_x: int
    cal_offset_y: float
    cal_delta_y: float
    cal_element_y: int
    data_type: int
    width: int
    height: int
    data_offset: int


@dataclass(frozen=True)
class SliceTagRecord:
    tag_type_id: int
    time: int
    position_x: float
    position_y: float


@dataclass(frozen=True)
class ResolvedSlice:
    """
    Fully decoded metadata of one slice.

    Attributes
    ----------
    index : int
        1-based element index.
    data, tag : SliceDataRecord, SliceTagRecord
    dtype : numpy.dtype
        Pixel dtype (little-endian).
    unit_level : int
        Number of factor-1000 steps applied to the meter calibration.
    unit : str
        Unit label of ``pixel_width``/``pixel_height``.
    unit_factor : float
        ``1000 ** unit_level``.
    pixel_width, pixel_height : float
        Calibrated pixel size in ``unit``.
    timestamp : str
        Acquisition time, local time zone, ``YYYY-MM-DD HH:MM:SS``.
    """
    index: int
    data: SliceDataRecord
    tag: SliceTagRecord
    dtype: np.dtype
    unit_level: int
    unit: str
    unit_factor: float
    pixel_width: float
    pixel_height: float
    timestamp: str

    @property
    def width(self):
        return self.data.width

    @property
    def height(self):
        return self.data.height

    @property
    def shape(self):
        return (self.data.height, self.data.width)

    @property
    def nbytes(self):
        return self.data.width * self.data.height * self.dtype.itemsize

    @property
    def pixel_format(self):
        return self.dtype.name


def pixel_dtype(code, index=None):
    """
    Return the NumPy dtype of SER pixel type ``code``.

    Raises
    ------
    UnsupportedPixelTypeError
        For codes outside 1..8 (complex and RGB types are not supported).
    """
    try:
        return SER_PIXEL_DTYPE_MAP[int(code)]
    except KeyError:
        where = "" if index is None else f" in slice {index}"
        raise UnsupportedPixelTypeError(
            f"Unsupported pixel type code {int(code)}{where}.",
            index=index, code=int(code)) from None


def unit_scale(width_m):
    """
    Pick a display unit for an image ``width_m`` meters wide.

    The width is multiplied by 1000 until it is at least 10, one unit level
    per step (m, mm, µm, nm, pm, fm). One step past femtometers the loop
    stops and the unit becomes "arbitrary units".

    Returns
    -------
    level : int
    label : str
    factor : float
        ``1000 ** level``, the factor applied to the meter calibration.
    """
    level = 0
    d = float(width_m)
    while d < 10 and level < len(SER_UNIT_LABELS):
        d *= 1000
        level += 1
    if level < len(SER_UNIT_LABELS):
        label = SER_UNIT_LABELS[level]
    else:
        label = SER_ARBITRARY_UNIT
    return level, label, float(1000 ** level)


def format_timestamp(seconds):
    """Format Unix ``seconds`` in the local time zone."""
    return datetime.datetime.fromtimestamp(int(seconds)).strftime(
        TIMESTAMP_FORMAT)


def decode_slice(reader, tables, index):
    """
    Decode the data and tag records of slice ``index``.

    Parameters
    ----------
    reader : SerReader.reader.ByteReader
        Open reader; its position is changed.
    tables : SerReader.header.OffsetTables
    index : int
        1-based element index.

    Returns
    -------
    ResolvedSlice

    Raises
    ------
    IndexError
        If index is outside the offset tables.
    UnsupportedPixelTypeError
        If the pixel type code is unknown.
    IoFailureError
        If a record cannot be read (bad offset, truncated file). The error
        carries ``index``.
    """
    data_off, tag_off = tables.locate(index)

    try:
        reader.seek(data_off)
        rec = reader.read(SER_DATA_RECORD_DTYPE)
        data_pos = reader.tell()

        reader.seek(tag_off)
        tag = reader.read(SER_TAG_RECORD_DTYPE)
    except IoFailureError as e:
        raise IoFailureError(f"Error reading slice no. {index}: {e}",
                             index=index) from e

    dtype = pixel_dtype(rec["data_type"], index=index)

    data = SliceDataRecord(
        cal_offset_x=float(rec["cal_offset_x"]),
        cal_delta_x=float(rec["cal_delta_x"]),
        cal_element_x=int(rec["cal_element_x"]),
        cal_offset_y=float(rec["cal_offset_y"]),
        cal_delta_y=float(rec["cal_delta_y"]),
        cal_element_y=int(rec["cal_element_y"]),
        data_type=int(rec["data_type"]),
        width=int(rec["width"]),
        height=int(rec["height"]),
        data_offset=int(data_pos),
    )
    tag_rec = SliceTagRecord(
        tag_type_id=int(tag["tag_type_id"]),
        time=int(tag["time"]),
        position_x=float(tag["position_x"]),
        position_y=float(tag["position_y"]),
    )

    # image width in meters decides the display unit
    level, label, factor = unit_scale(data.cal_delta_x * data.width)

    return ResolvedSlice(
        index=int(index),
        data=data,
        tag=tag_rec,
        dtype=dtype,
        unit_level=level,
        unit=label,
        unit_factor=factor,
        pixel_width=data.cal_delta_x * factor,
        pixel_height=data.cal_delta_y * factor,
        timestamp=format_timestamp(tag_rec.time),
    )


def read_pixels(reader, resolved):
    """
    Load the pixels of a decoded slice.

    Rows are stored bottom-to-top in the file; the returned array is flipped
    to the usual top-to-bottom order.

    Returns
    -------
    numpy.ndarray
        Writable array of shape ``(height, width)`` and ``resolved.dtype``.
    """
    n = resolved.width * resolved.height
    try:
        reader.seek(resolved.data.data_offset)
        flat = reader.read(resolved.dtype, count=n)
    except IoFailureError as e:
        raise IoFailureError(
            f"Error reading pixels of slice no. {resolved.index}: {e}",
            index=resolved.index) from e
    return np.flipud(flat.reshape(resolved.shape)).copy()
