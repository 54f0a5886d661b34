# -*- coding: utf-8 -*-
"""
Created on Wed Oct  7 09:38:04 2026

@author: p-sik

Assembly of an ordered image stack from decoded slices.

Every selected index produces one tagged outcome:

- ``SliceOk``    : decoded and consistent with the first slice
- ``SliceSkip``  : decoded, but its size or pixel type differs from the
                   first slice (excluded, not an error)
- ``SliceFatal`` : decoding failed; the whole reconstruction is aborted

The outcomes are reduced in ascending index order, also when the slices were
decoded in parallel.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from concurrent.futures import ThreadPoolExecutor, as_completed

import numpy as np
from tqdm import tqdm

from .decoder import decode_slice, read_pixels
from .errors import SERError, ReconstructionCancelledError
from .reader import ByteReader


@dataclass(frozen=True, eq=False)
class StackSlice:
    """
    One slice of the reconstructed stack.

    ``pixels`` is a ``(height, width)`` array in display orientation, or None
    when the stack was read with ``load_data=False``; the slice then only
    describes where its pixels are (``data_offset``, ``shape``, ``dtype``).
    """
    meta: object
    pixels: object = None

    @property
    def index(self):
        return self.meta.index

    @property
    def width(self):
        return self.meta.width

    @property
    def height(self):
        return self.meta.height

    @property
    def shape(self):
        return self.meta.shape

    @property
    def dtype(self):
        return self.meta.dtype

    @property
    def pixel_format(self):
        return self.meta.pixel_format

    @property
    def pixel_width(self):
        return self.meta.pixel_width

    @property
    def pixel_height(self):
        return self.meta.pixel_height

    @property
    def unit(self):
        return self.meta.unit

    @property
    def timestamp(self):
        return self.meta.timestamp

    @property
    def data_offset(self):
        return self.meta.data.data_offset

    @property
    def position(self):
        return (self.meta.tag.position_x, self.meta.tag.position_y)


@dataclass(frozen=True)
class SliceOk:
    slice: StackSlice

    @property
    def index(self):
        return self.slice.index


@dataclass(frozen=True)
class SliceSkip:
    index: int
    reason: str


@dataclass(frozen=True)
class SliceFatal:
    index: int
    error: Exception


@dataclass(frozen=True)
class Calibration:
    """Spatial calibration of the stack, taken from its first slice."""
    pixel_width: float
    pixel_height: float
    unit: str
    x_origin: float = 0.0
    y_origin: float = 0.0

    @classmethod
    def from_slice(cls, resolved):
        f = resolved.unit_factor
        return cls(
            pixel_width=resolved.pixel_width,
            pixel_height=resolved.pixel_height,
            unit=resolved.unit,
            x_origin=resolved.data.cal_offset_x * f,
            y_origin=resolved.data.cal_offset_y * f,
        )


@dataclass(eq=False)
class StackResult:
    """
    Result of a stack reconstruction.

    Attributes
    ----------
    header : SerReader.header.FileHeader
    selection : SerReader.selection.SliceSelection
    slices : list of StackSlice
        Ascending index order.
    skipped : list of int
        Indices excluded because they did not match the first slice.
    calibration : Calibration or None
        None only if no slice was decoded.
    """
    header: object
    selection: object
    slices: list = field(default_factory=list)
    skipped: list = field(default_factory=list)
    calibration: object = None

    def __len__(self):
        return len(self.slices)

    def __iter__(self):
        return iter(self.slices)

    def __getitem__(self, i):
        return self.slices[i]

    @property
    def n_skipped(self):
        return len(self.skipped)

    @property
    def indices(self):
        return [s.index for s in self.slices]

    @property
    def timestamps(self):
        return [s.timestamp for s in self.slices]

    @property
    def data(self):
        """Pixels as one ``(n, height, width)`` array."""
        if not self.slices:
            return None
        if any(s.pixels is None for s in self.slices):
            raise ValueError("Stack was read without pixel data "
                             "(load_data=False).")
        return np.stack([s.pixels for s in self.slices])


def decode_outcome(reader, tables, index, load_data=True):
    """Decode slice ``index`` into ``SliceOk`` or ``SliceFatal``."""
    try:
        resolved = decode_slice(reader, tables, index)
        pixels = read_pixels(reader, resolved) if load_data else None
    except SERError as e:
        if e.index is None:
            e.index = index
        return SliceFatal(index=index, error=e)
    return SliceOk(slice=StackSlice(meta=resolved, pixels=pixels))


def classify(outcome, reference):
    """
    Compare a decoded slice with the reference ``(width, height, dtype)``.

    Returns the outcome unchanged or a ``SliceSkip``.
    """
    if not isinstance(outcome, SliceOk) or reference is None:
        return outcome
    s = outcome.slice
    if (s.width, s.height, s.dtype) != reference:
        return SliceSkip(
            index=s.index,
            reason=f"{s.width}x{s.height} {s.pixel_format}, expected "
                   f"{reference[0]}x{reference[1]} {reference[2].name}")
    return outcome


def _check_cancel(cancel):
    if cancel is not None and cancel.is_set():
        raise ReconstructionCancelledError("Stack reconstruction cancelled.")


def _iter_sequential(reader, tables, indices, load_data, cancel, pbar):
    for i in indices:
        _check_cancel(cancel)
        yield decode_outcome(reader, tables, i, load_data)
        pbar.update(1)


def _iter_parallel(path, tables, indices, load_data, cancel, pbar,
                   n_workers, chunk_size):
    stop = threading.Event()
    # lowest failing index seen so far; slices above it are not decoded
    failed_at = [None]

    def _past_failure(i):
        f = failed_at[0]
        return f is not None and i > f

    # Worker over a chunk of indices, with its own file handle
    def _worker(chunk):
        out = []
        with ByteReader(path) as reader:
            for i in chunk:
                if (stop.is_set() or _past_failure(i)
                        or (cancel is not None and cancel.is_set())):
                    break
                o = decode_outcome(reader, tables, i, load_data)
                out.append(o)
                if isinstance(o, SliceFatal):
                    break
        return out

    chunks = [indices[s:s + chunk_size]
              for s in range(0, len(indices), chunk_size)]
    results = {}
    fatal = None

    with ThreadPoolExecutor(max_workers=n_workers) as ex:
        futures = {ex.submit(_worker, c): c[0] for c in chunks}
        try:
            for fut in as_completed(futures):
                if fut.cancelled():
                    continue
                for o in fut.result():
                    if isinstance(o, SliceFatal):
                        if fatal is None or o.index < fatal.index:
                            fatal = o
                            failed_at[0] = o.index
                            # chunks before the failure must still finish
                            for f, first in futures.items():
                                if first > o.index:
                                    f.cancel()
                        continue
                    results[o.index] = o
                    pbar.update(1)
                _check_cancel(cancel)
        except BaseException:
            stop.set()
            for fut in futures:
                fut.cancel()
            raise

    if fatal is not None:
        raise fatal.error

    for i in indices:
        yield results[i]


def assemble_stack(reader, header, tables, selection, load_data=True,
                   n_workers=1, chunk_size=16, cancel=None, progress=False,
                   verbose=0):
    """
    Decode the selected slices and build the stack.

    Parameters
    ----------
    reader : SerReader.reader.ByteReader
        Open reader (used directly when ``n_workers == 1``; with more
        workers each one opens its own reader on ``reader.path``).
    header : SerReader.header.FileHeader
    tables : SerReader.header.OffsetTables
    selection : SerReader.selection.SliceSelection
    load_data : bool, default True
        If False, pixels are not read and ``StackSlice.pixels`` is None.
    n_workers : int, default 1
        Number of decoding threads.
    chunk_size : int, default 16
        Number of slices per worker task.
    cancel : threading.Event or None
        Checked between slices; when set, ``ReconstructionCancelledError``
        is raised.
    progress : bool, default False
        Show a tqdm progress bar.
    verbose : int, default 0
        >0 prints a warning for every skipped slice.

    Returns
    -------
    StackResult

    Raises
    ------
    UnsupportedPixelTypeError, IoFailureError
        For the first slice that cannot be decoded (``error.index`` is set).
    ReconstructionCancelledError
    """
    if n_workers is None or n_workers < 1:
        raise ValueError("n_workers must be a positive integer.")
    if chunk_size < 1:
        raise ValueError("chunk_size must be a positive integer.")

    indices = selection.indices()
    result = StackResult(header=header, selection=selection)
    reference = None

    with tqdm(total=len(indices), desc="Reading slices", unit="slice",
              disable=not progress, dynamic_ncols=True) as pbar:
        if n_workers == 1 or len(indices) == 1:
            outcomes = _iter_sequential(
                reader, tables, indices, load_data, cancel, pbar)
        else:
            outcomes = _iter_parallel(
                reader.path, tables, indices, load_data, cancel, pbar,
                n_workers, chunk_size)

        for outcome in outcomes:
            outcome = classify(outcome, reference)

            if isinstance(outcome, SliceFatal):
                raise outcome.error

            if isinstance(outcome, SliceSkip):
                result.skipped.append(outcome.index)
                if verbose:
                    print(f"[WARNING] Slice {outcome.index} skipped "
                          f"(wrong type or wrong dimensions: "
                          f"{outcome.reason}).")
                continue

            s = outcome.slice
            if reference is None:
                reference = (s.width, s.height, s.dtype)
                result.calibration = Calibration.from_slice(s.meta)
            result.slices.append(s)

    return result
