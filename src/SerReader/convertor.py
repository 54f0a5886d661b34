# -*- coding: utf-8 -*-
"""
Created on Fri Oct  9 10:27:45 2026

@author: p-sik

Export of reconstructed SER stacks to HDF5.

Layout written by ``stack2hdf5``::

    /data         (n, H, W)   pixels, display orientation
    /indices      (n,)        1-based SER element index of every slice
    /timestamps   (n,)        acquisition time strings
    /positions    (n, 2)      stage position (x, y)
    /skipped      (k,)        indices excluded from the stack
    /header_json              JSON dict of the SER header

``/data`` carries the attributes ``pixel_width``, ``pixel_height``, ``unit``,
``x_origin`` and ``y_origin``.
"""
import os
import json
import numpy as np
import h5py
from tqdm import tqdm

from .header import header_summary


def stack2hdf5(result, filename, chunk_size=64, overwrite=True, verbose=1):
    """
    Save a reconstructed stack to an HDF5 (.h5) file.

    Slices are written in chunks to keep memory usage low.

    Parameters
    ----------
    result : SerReader.stack.StackResult
        Stack read with ``load_data=True``.
    filename : str
        Path to the output HDF5 file.
    chunk_size : int, optional
        Number of slices written per step. Default 64.
    overwrite : bool, optional
        If False and the file exists, raise FileExistsError.
    verbose : int, optional
        >0 prints status messages and a progress bar.

    Returns
    -------
    str
        Absolute path of the written file.
    """
    if len(result) == 0:
        raise ValueError("Stack is empty, nothing to export.")
    if any(s.pixels is None for s in result.slices):
        raise ValueError("Stack was read without pixel data (load_data=False).")
    if os.path.exists(filename) and not overwrite:
        raise FileExistsError(f"Output exists: {filename}")

    if verbose:
        print("[INFO] Saving stack to .h5...")

    first = result.slices[0]
    n = len(result)
    H, W = first.shape
    cal = result.calibration

    with h5py.File(filename, "w") as f:
        dset = f.create_dataset(
            "data", shape=(n, H, W), dtype=first.dtype,
            chunks=(1, H, W))

        with tqdm(total=n, unit="slice", desc="Saving slices: ",
                  disable=not verbose) as pbar:
            for i in range(0, n, chunk_size):
                end_index = min(i + chunk_size, n)
                block = np.stack(
                    [s.pixels for s in result.slices[i:end_index]])
                dset[i:end_index] = block
                pbar.update(end_index - i)

        dset.attrs["pixel_width"] = cal.pixel_width
        dset.attrs["pixel_height"] = cal.pixel_height
        dset.attrs["unit"] = cal.unit
        dset.attrs["x_origin"] = cal.x_origin
        dset.attrs["y_origin"] = cal.y_origin

        f.create_dataset("skipped",
                         data=np.asarray(result.skipped, dtype=np.int64))
        f.create_dataset("indices",
                         data=np.asarray(result.indices, dtype=np.int64))
        f.create_dataset("timestamps",
                         data=np.asarray(result.timestamps, dtype="S19"))
        f.create_dataset("positions",
                         data=np.asarray([s.position for s in result.slices],
                                         dtype=np.float64))
        f.create_dataset("header_json",
                         data=json.dumps(header_summary(result.header)))

    path = os.path.abspath(filename)
    if verbose:
        print(f"[INFO] Data successfully saved to {path}")
    return path


def load_hdf5(filename, lazy=False):
    """
    Load a stack written by ``stack2hdf5``.

    Parameters
    ----------
    filename : str
        Path to the HDF5 file.
    lazy : bool, optional
        If True, return the open ``h5py.File`` and the ``/data`` dataset
        handle instead of reading everything. The caller must close the file.

    Returns
    -------
    lazy=False : (data, meta)
        ``data`` is an ndarray ``(n, H, W)``; ``meta`` a dict with the
        calibration attributes, ``indices``, ``timestamps``, ``positions``
        and ``header``.
    lazy=True : (f, dset, meta)
    """
    if not os.path.isfile(filename):
        raise FileNotFoundError(f"File not found: {filename}")

    f = h5py.File(filename, "r")
    try:
        if "data" not in f:
            raise KeyError(f"No '/data' dataset in {filename}")
        dset = f["data"]

        raw = f["header_json"][()]
        if isinstance(raw, (bytes, bytearray)):
            raw = raw.decode("utf-8")

        meta = {k: dset.attrs[k] for k in
                ("pixel_width", "pixel_height", "x_origin", "y_origin")}
        unit = dset.attrs["unit"]
        meta["unit"] = unit.decode("utf-8") if isinstance(unit, bytes) \
            else str(unit)
        meta["skipped"] = [int(i) for i in f["skipped"][...]]
        meta["indices"] = [int(i) for i in f["indices"][...]]
        meta["timestamps"] = [t.decode("ascii") for t in f["timestamps"][...]]
        meta["positions"] = f["positions"][...]
        meta["header"] = json.loads(raw)

        if lazy:
            return f, dset, meta
        data = dset[...]
    except BaseException:
        f.close()
        raise

    f.close()
    return data, meta
