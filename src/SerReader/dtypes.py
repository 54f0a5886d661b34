# -*- coding: utf-8 -*-
"""
SerReader.dtypes
================

Canonical NumPy dtypes and constants used across SerReader for decoding
TIA/ES Vision ``.ser`` files.

A SER file is made of a fixed prologue, one dimension descriptor, two
offset tables and, scattered behind them, one data record and one tag
record per element:

- ``data record`` holds the X/Y calibration, pixel type and array size of
  one 2D image, directly followed by its pixels.
- ``tag record`` holds the acquisition time and stage position.

All records are little-endian and packed (no alignment padding), so every
dtype below maps byte-for-byte onto the file.
"""

from __future__ import annotations

import numpy as np

__all__ = [
    "SER_BYTE_ORDER",
    "SER_SERIES_ID",
    "SER_VERSION_THRESHOLD",
    "SER_DATA_1D",
    "SER_DATA_2D",
    "SER_TAG_TIME",
    "SER_TAG_TIME_POSITION",
    "SER_SIGNATURE_DTYPE",
    "SER_PROLOGUE_LEGACY_DTYPE",
    "SER_PROLOGUE_DTYPE",
    "SER_DIMENSION_DTYPE",
    "SER_OFFSET_DTYPE",
    "SER_DATA_RECORD_DTYPE",
    "SER_TAG_RECORD_DTYPE",
    "SER_PIXEL_DTYPE_MAP",
    "SER_UNIT_LABELS",
    "SER_ARBITRARY_UNIT",
]

# -----------------------------------------------------------------------------
# Magic numbers
# -----------------------------------------------------------------------------

SER_BYTE_ORDER = 0x4949          # "II", little-endian
SER_SERIES_ID = 0x0197           # ES Vision series data file
SER_VERSION_THRESHOLD = 0x0220   # below: 32-bit offset array offset
SER_DATA_1D = 0x4120
SER_DATA_2D = 0x4122
SER_TAG_TIME = 0x4152
SER_TAG_TIME_POSITION = 0x4142

# -----------------------------------------------------------------------------
# Header
# -----------------------------------------------------------------------------

SER_SIGNATURE_DTYPE = np.dtype(
    [
        ("byte_order", "<u2"),
        ("series_id", "<u2"),
        ("version", "<u2"),
    ]
)
"""
First 6 bytes of every SER file. ``version`` decides which prologue
dtype follows.
"""

SER_PROLOGUE_LEGACY_DTYPE = np.dtype(
    [
        ("data_type_id", "<u4"),
        ("tag_type_id", "<u4"),
        ("total_elements", "<u4"),
        ("valid_elements", "<u4"),
        ("offset_table_start", "<u4"),
        ("n_dimensions", "<u4"),
    ]
)
"""Prologue of files with ``version < SER_VERSION_THRESHOLD``."""

SER_PROLOGUE_DTYPE = np.dtype(
    [
        ("data_type_id", "<u4"),
        ("tag_type_id", "<u4"),
        ("total_elements", "<u4"),
        ("valid_elements", "<u4"),
        ("offset_table_start", "<u8"),
        ("n_dimensions", "<u4"),
    ]
)
"""Prologue of files with ``version >= SER_VERSION_THRESHOLD``."""

SER_DIMENSION_DTYPE = np.dtype(
    [
        ("size", "<u4"),
        ("calibration_offset", "<f8"),
        ("calibration_delta", "<f8"),
        ("calibration_element", "<u4"),
    ]
)
"""
Fixed part of a dimension descriptor. It is followed by two
length-prefixed strings (description, unit), each a ``<u4`` length and
that many bytes.
"""

SER_OFFSET_DTYPE = np.dtype("<u8")
"""Entry of the data and tag offset tables (always 64-bit on disk)."""

# -----------------------------------------------------------------------------
# Per-element records
# -----------------------------------------------------------------------------

SER_DATA_RECORD_DTYPE = np.dtype(
    [
        ("cal_offset_x", "<f8"),
        ("cal_delta_x", "<f8"),
        ("cal_element_x", "<i4"),
        ("cal_offset_y", "<f8"),
        ("cal_delta_y", "<f8"),
        ("cal_element_y", "<i4"),
        ("data_type", "<u2"),
        ("width", "<u4"),
        ("height", "<u4"),
    ]
)
"""
Structured dtype for the 2D data record (50 bytes). Pixels start right
after it.

Fields
------
cal_offset_x, cal_offset_y : float64
    Calibrated coordinate of the calibration element, in meters.
cal_delta_x, cal_delta_y : float64
    Pixel size in meters.
cal_element_x, cal_element_y : int32
    Pixel index the offsets refer to.
data_type : uint16
    Pixel type code, see ``SER_PIXEL_DTYPE_MAP``.
width, height : uint32
    Array size in pixels.
"""

SER_TAG_RECORD_DTYPE = np.dtype(
    [
        ("tag_type_id", "<u2"),
        ("reserved", "<u2"),
        ("time", "<i4"),
        ("position_x", "<f8"),
        ("position_y", "<f8"),
    ]
)
"""
Structured dtype for the tag record (24 bytes). ``reserved`` is two
undocumented bytes. Both position fields are read for every tag type.
"""

# -----------------------------------------------------------------------------
# Pixel types and units
# -----------------------------------------------------------------------------

SER_PIXEL_DTYPE_MAP = {
    1: np.dtype("<u1"),
    2: np.dtype("<u2"),
    3: np.dtype("<u4"),
    4: np.dtype("<i2"),
    5: np.dtype("<i2"),
    6: np.dtype("<i4"),
    7: np.dtype("<f4"),
    8: np.dtype("<f8"),
}
"""Mapping of SER pixel type codes to NumPy dtypes."""

SER_UNIT_LABELS = ("m", "mm", "µm", "nm", "pm", "fm")
"""Unit label per factor-of-1000 level, starting at meters."""

SER_ARBITRARY_UNIT = "arbitrary units"
