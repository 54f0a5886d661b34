# -*- coding: utf-8 -*-
"""
Created on Thu Oct  8 14:16:23 2026

@author: p-sik

Reading image stacks from TIA/ES Vision ``.ser`` files.

``read_ser`` is the functional entry point; ``SERStack`` wraps it together
with configuration, header printing, HDF5 export and a preview figure.
"""
import os

from .config import load_config, merge_overrides
from .header import parse_header, read_offset_tables, print_ser_header
from .reader import ByteReader
from .selection import select_slices
from .stack import assemble_stack

import SerReader.convertor as serConv
import SerReader.visualizer as serVisu


def read_ser(path, start=None, end=None, increment=None, *,
             load_data=True, n_workers=1, chunk_size=16, cancel=None,
             progress=False, verbose=0):
    """
    Reconstruct an image stack from a SER file.

    Parameters
    ----------
    path : str or os.PathLike
        SER file.
    start, end : int or None
        First and last slice, 1-based and inclusive. Negative values count
        from the last valid slice (-1 is the last one). Default: all slices.
    increment : int or None
        Step between slices, default 1. 0 reads ``start`` only.
    load_data : bool, default True
        If False, only metadata is decoded.
    n_workers : int, default 1
        Number of decoding threads (each with its own file handle).
    chunk_size : int, default 16
        Slices per worker task in parallel mode.
    cancel : threading.Event or None
        Set it from another thread to abort between slices.
    progress : bool, default False
        Show a tqdm progress bar.
    verbose : int, default 0
        >0 prints status messages and skipped-slice warnings.

    Returns
    -------
    SerReader.stack.StackResult

    Raises
    ------
    SERFileNotFoundError
        If the file does not exist.
    InvalidByteOrderError, InvalidFormatSignatureError,
    UnsupportedDataKindError, UnsupportedDimensionCountError,
    DimensionMismatchError, StructuralCorruptionError
        For invalid headers, before any slice is read.
    InvalidRangeError, InvalidIncrementError
        For an invalid selection, before any slice is read.
    UnsupportedPixelTypeError, IoFailureError
        For the first slice that cannot be decoded.
    ReconstructionCancelledError
        If ``cancel`` was set.
    """
    if verbose:
        print(f"[INFO] Loading SER file: {os.fspath(path)}")

    with ByteReader(path) as reader:
        header = parse_header(reader)
        tables = read_offset_tables(reader, header)
        selection = select_slices(
            header.valid_elements, start, end, increment)

        if verbose:
            print(f"[INFO] Reading slices {selection.start}..{selection.end} "
                  f"(increment {selection.increment}, "
                  f"{len(selection)} slices)...")

        result = assemble_stack(
            reader, header, tables, selection,
            load_data=load_data,
            n_workers=n_workers,
            chunk_size=chunk_size,
            cancel=cancel,
            progress=progress,
            verbose=verbose,
        )

    if verbose:
        if result.skipped:
            print(f"[WARNING] {result.n_skipped} slice(s) skipped: "
                  f"{result.skipped}")
        print(f"[DONE] {len(result)} slice(s) read.")
    return result


class SERStack:
    """
    Convenience wrapper for loading a SER image stack, printing its header,
    exporting it to HDF5 and previewing it.

    Parameters
    ----------
    ser_file : str or pathlib.Path
        Path to the ``.ser`` file.
    out_dir : str or pathlib.Path, optional
        Output directory for the HDF5 export. Defaults to the folder of
        ``ser_file``.
    start, end, increment : int or None
        Slice selection, see ``read_ser``. Override the config file.
    config : str or None
        TOML configuration. If None, a sidecar ``<stem>.toml`` next to the
        SER file is used when present.
    n_workers : int or None
        Decoding threads. Overrides the config file.
    load_data : bool or None
        Read pixels (default) or metadata only. Overrides the config file.
    h5file : str or None
        Filename of an HDF5 export written to ``out_dir``. If None, no export
        is done unless the config file names one.
    cmap : str, default "gray"
        Colormap used for the preview figure.
    show : bool, default False
        If True, display an overview of the stack after loading.
    progress : bool or None
        tqdm progress while reading slices. Overrides the config file.
    verbose : int or None
        Verbosity level; >0 prints basic status messages.
    print_header : bool, default True
        If True and verbose, pretty-print the header after loading.

    Attributes
    ----------
    result : SerReader.stack.StackResult
    header : SerReader.header.FileHeader
    data : numpy.ndarray or None
        ``(n, height, width)`` stack; None with ``load_data=False``.
    calibration : SerReader.stack.Calibration
    skipped : list of int
    h5path : str or None
        Path of the HDF5 export, if one was written.
    """
    def __init__(self,
                 ser_file,
                 out_dir      = None,
                 start        = None,
                 end          = None,
                 increment    = None,
                 config       = None,
                 n_workers    = None,
                 load_data    = None,
                 h5file       = None,
                 cmap         = "gray",
                 show         = False,
                 progress     = None,
                 verbose      = None,
                 print_header = True,
                 ):

        ## Initialize input attributes ---------------------------------------
        self.ser_file = os.fspath(ser_file)

        if out_dir is None:
            self.out_dir = os.path.dirname(os.path.abspath(self.ser_file))
        else:
            self.out_dir = os.fspath(out_dir)

        self.cmap = cmap
        self.show = show

        # Configuration: file first, keyword arguments on top ---------------
        cfg = load_config(config, ser_path=self.ser_file)
        self.config = merge_overrides(
            cfg,
            start=start, end=end, increment=increment,
            n_workers=n_workers, load_data=load_data,
            progress=progress, verbose=verbose, h5file=h5file,
        )
        sel = self.config["selection"]
        opts = self.config["reader"]
        self.verbose = opts["verbose"]

        if self.config["export"]["h5file"] is not None and not opts["load_data"]:
            raise ValueError("HDF5 export needs pixel data; "
                             "h5file cannot be combined with load_data=False.")

        # Load stack ----------------------------------------------------------
        self.result = read_ser(
            self.ser_file,
            sel["start"], sel["end"], sel["increment"],
            load_data=opts["load_data"],
            n_workers=opts["n_workers"],
            progress=opts["progress"],
            verbose=self.verbose,
        )
        self.header = self.result.header
        self.calibration = self.result.calibration
        self.skipped = self.result.skipped
        self.data = self.result.data if opts["load_data"] else None

        # Print header information optionally ---------------------------------
        if print_header and self.verbose:
            print_ser_header(self.header)

        # Export to HDF5 optionally -------------------------------------------
        self.h5path = None
        h5name = self.config["export"]["h5file"]
        if h5name is not None:
            os.makedirs(self.out_dir, exist_ok=True)
            self.h5path = serConv.stack2hdf5(
                self.result,
                filename=os.path.join(self.out_dir, h5name),
                verbose=self.verbose)

        # Show overview optionally --------------------------------------------
        if show and self.data is not None:
            if self.verbose:
                print("[INFO] Displaying stack overview...")
            self.figure = serVisu.show_stack_overview(
                self.result, cmap=self.cmap)

    def __len__(self):
        return len(self.result)

    def __getitem__(self, i):
        return self.result[i]
