# -*- coding: utf-8 -*-
"""
Created on Mon Oct  5 10:03:17 2026

@author: p-sik

Random-access little-endian reader over a binary file.

All decoding in SerReader goes through ``ByteReader.read`` with one of the
dtypes from ``SerReader.dtypes``, so the decoders never assemble integers
from single bytes themselves.
"""
from __future__ import annotations

import os
import numpy as np

from .errors import IoFailureError, SERFileNotFoundError


class ByteReader:
    """
    Seekable binary reader returning NumPy scalars and records.

    Parameters
    ----------
    path : str or os.PathLike
        File to open in ``"rb"`` mode.

    Notes
    -----
    One ``ByteReader`` must not be shared between threads: every read moves
    the file position. Open one reader per worker instead.
    """

    def __init__(self, path):
        self.path = os.fspath(path)
        if not os.path.isfile(self.path):
            raise SERFileNotFoundError(f"File not found: {self.path}")
        try:
            self._fh = open(self.path, "rb")
        except FileNotFoundError as e:
            raise SERFileNotFoundError(f"File not found: {self.path}") from e
        except OSError as e:
            raise IoFailureError(f"Cannot open {self.path}: {e}") from e
        self.size = os.fstat(self._fh.fileno()).st_size

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    @property
    def closed(self):
        return self._fh is None

    def close(self):
        if self._fh is not None:
            self._fh.close()
            self._fh = None

    def _handle(self):
        if self._fh is None:
            raise IoFailureError(f"Reader for {self.path} is closed.")
        return self._fh

    def tell(self):
        return self._handle().tell()

    def seek(self, offset):
        """Move to the absolute byte ``offset``."""
        offset = int(offset)
        if offset < 0 or offset > self.size:
            raise IoFailureError(
                f"Seek to {offset} outside file of {self.size} bytes.")
        try:
            self._handle().seek(offset, os.SEEK_SET)
        except OSError as e:
            raise IoFailureError(f"Seek to {offset} failed: {e}") from e

    def read_bytes(self, n):
        """Read exactly ``n`` bytes or raise ``IoFailureError``."""
        n = int(n)
        if n < 0:
            raise ValueError("n must be non-negative.")
        fh = self._handle()
        pos = fh.tell()
        if n > self.size - pos:
            raise IoFailureError(
                f"Read of {n} bytes at {pos} runs past end of file "
                f"({self.size} bytes).")
        try:
            buf = fh.read(n)
        except OSError as e:
            raise IoFailureError(f"Read of {n} bytes at {pos} failed: {e}") from e
        if len(buf) != n:
            raise IoFailureError(
                f"Short read at {pos}: expected {n} bytes, got {len(buf)}.")
        return buf

    def read(self, dtype, count=None):
        """
        Read little-endian values described by ``dtype``.

        Parameters
        ----------
        dtype : numpy.dtype or str
            Scalar or structured dtype.
        count : int or None
            If None, return a single value (scalar or ``numpy.void`` record).
            Otherwise return a 1D array of ``count`` items.

        Returns
        -------
        numpy scalar, numpy.void or numpy.ndarray
        """
        dtype = np.dtype(dtype)
        n = 1 if count is None else int(count)
        buf = self.read_bytes(dtype.itemsize * n)
        arr = np.frombuffer(buf, dtype=dtype, count=n)
        return arr[0] if count is None else arr

    def read_string(self):
        """Read a ``<u4`` length-prefixed string, one byte per character."""
        length = int(self.read("<u4"))
        return self.read_bytes(length).decode("latin-1")
