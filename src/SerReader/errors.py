# -*- coding: utf-8 -*-
"""
Created on Mon Oct  5 09:12:41 2026

@author: p-sik

Exceptions raised while decoding SER files.

Every exception derives from ``SERError`` and from the closest builtin, so
``except ValueError`` or ``except OSError`` keep working for callers that do
not care about SER specifics.
"""


class SERError(Exception):
    """Base class of all SerReader errors."""

    def __init__(self, message, index=None):
        super().__init__(message)
        self.index = index


class InvalidByteOrderError(SERError, ValueError):
    pass


class InvalidFormatSignatureError(SERError, ValueError):
    pass


class UnsupportedDataKindError(SERError, ValueError):
    pass


class UnsupportedDimensionCountError(SERError, ValueError):
    pass


class DimensionMismatchError(SERError, ValueError):
    pass


class StructuralCorruptionError(SERError, ValueError):
    pass


class InvalidRangeError(SERError, ValueError):
    pass


class InvalidIncrementError(SERError, ValueError):
    pass


class UnsupportedPixelTypeError(SERError, ValueError):
    """Slice with a pixel type code outside ``SER_PIXEL_DTYPE_MAP``."""

    def __init__(self, message, index=None, code=None):
        super().__init__(message, index=index)
        self.code = code


class IoFailureError(SERError, IOError):
    """Read or seek failure, including short reads at end of file."""


class SERFileNotFoundError(SERError, FileNotFoundError):
    pass


class ReconstructionCancelledError(SERError, RuntimeError):
    """Raised when a stack reconstruction is cancelled between slices."""
