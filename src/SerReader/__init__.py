"""
SerReader is a lightweight Python toolkit for loading image stacks from
``.ser`` files written by the TIA / ES Vision acquisition software of
transmission electron microscopes.

A SER file stores a flat series of 2D images. Every image (element) has

1) a data record
   - X/Y calibration (offset, pixel size in meters, calibration element)
   - pixel type and array size, followed directly by the pixels

2) a tag record
   - acquisition time (Unix seconds)
   - stage position (x, y)

Two offset tables behind the file header point at the data and tag record
of every element.

SerReader provides utilities for:
- validating the header and reading the offset tables
- selecting a sub-range of slices (negative indices count from the end)
- decoding slices into NumPy arrays with calibration in a readable unit
- assembling a consistent stack (slices with a different size or pixel
  type than the first one are skipped)
- exporting stacks to HDF5 and quick visualization

Typical workflow
----------------
Read every second image of the last ten::

    from SerReader import serfile as serFile

    result = serFile.read_ser(
        r"C:\\path\\to\\series_1.ser",
        start=-10,
        end=-1,
        increment=2,
        progress=True
        )
    stack = result.data            # (n, H, W)
    cal = result.calibration       # pixel size + unit of the first slice

Load, export to HDF5 and preview in one go::

    from SerReader.serfile import SERStack

    ser = SERStack(
        r"C:\\path\\to\\series_1.ser",
        h5file="series_1.h5",
        show=True,
        verbose=1
        )

Modules
-------
- ``SerReader.dtypes``     : canonical record dtypes and magic numbers
- ``SerReader.errors``     : exception hierarchy
- ``SerReader.reader``     : little-endian random-access byte reader
- ``SerReader.header``     : header and offset table parsing
- ``SerReader.selection``  : slice range selection
- ``SerReader.decoder``    : per-slice decoding
- ``SerReader.stack``      : stack assembly
- ``SerReader.serfile``    : ``read_ser`` and the ``SERStack`` wrapper
- ``SerReader.config``     : TOML configuration
- ``SerReader.convertor``  : HDF5 export
- ``SerReader.visualizer`` : plotting helpers

Version
-------
This package follows semantic versioning starting from the development series.
"""

__version__ = "0.0.1"


import SerReader.dtypes
import SerReader.errors
import SerReader.reader
import SerReader.header
import SerReader.selection
import SerReader.decoder
import SerReader.stack
import SerReader.config
import SerReader.convertor
import SerReader.visualizer
import SerReader.serfile

from SerReader.serfile import read_ser, SERStack
