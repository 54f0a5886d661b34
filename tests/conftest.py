import struct

import matplotlib
matplotlib.use("Agg")

import numpy as np
import pytest


PIXEL_DTYPES = {
    1: "<u1", 2: "<u2", 3: "<u4", 4: "<i2",
    5: "<i2", 6: "<i4", 7: "<f4", 8: "<f8",
}


def make_slice(width=4, height=4, code=1, cal_delta=1e-9, cal_offset=0.0,
               time=1_500_000_000, position=(0.0, 0.0), stored=None):
    """
    One element of a synthetic SER file. ``stored`` is the pixel array as it
    sits on disk (bottom row first).
    """
    if stored is None and code in PIXEL_DTYPES:
        stored = (np.arange(width * height) % 200).astype(
            PIXEL_DTYPES[code]).reshape(height, width)
    return {
        "width": width,
        "height": height,
        "code": code,
        "cal_delta": cal_delta,
        "cal_offset": cal_offset,
        "time": time,
        "position": position,
        "stored": stored,
    }


def build_ser(slices, version=0x0220, total=None, valid=None,
              byte_order=0x4949, series_id=0x0197, data_type_id=0x4122,
              tag_type_id=0x4142, n_dimensions=1, dim_size=None,
              description=b"Number", unit=b"", offset_table_start=None,
              data_offsets=None):
    """Bytes of a SER file holding ``slices``."""
    total = len(slices) if total is None else total
    valid = len(slices) if valid is None else valid
    dim_size = total if dim_size is None else dim_size

    head = struct.pack("<HHH", byte_order, series_id, version)
    head += struct.pack("<IIII", data_type_id, tag_type_id, total, valid)
    off_fmt = "<I" if version < 0x0220 else "<Q"
    rest = struct.pack("<I", n_dimensions)
    rest += struct.pack("<IddI", dim_size, 0.0, 1.0, 0)
    rest += struct.pack("<I", len(description)) + description
    rest += struct.pack("<I", len(unit)) + unit

    table_start = len(head) + struct.calcsize(off_fmt) + len(rest)
    declared = table_start if offset_table_start is None \
        else offset_table_start
    header = head + struct.pack(off_fmt, declared) + rest

    records_start = table_start + 16 * total
    body = b""
    d_off, t_off = [], []
    for s in slices:
        d_off.append(records_start + len(body))
        body += struct.pack(
            "<ddiddiHII",
            s["cal_offset"], s["cal_delta"], 0,
            s["cal_offset"], s["cal_delta"], 0,
            s["code"], s["width"], s["height"])
        if s["stored"] is not None:
            body += np.ascontiguousarray(s["stored"]).tobytes()
        t_off.append(records_start + len(body))
        body += struct.pack("<HHidd", tag_type_id & 0xFFFF, 0, s["time"],
                            s["position"][0], s["position"][1])

    if data_offsets is not None:
        # None keeps the computed offset
        d_off = [d if o is None else o for o, d in zip(data_offsets, d_off)]
    d_off += [0] * (total - len(d_off))
    t_off += [0] * (total - len(t_off))

    tables = struct.pack(f"<{total}Q", *d_off[:total])
    tables += struct.pack(f"<{total}Q", *t_off[:total])
    return header + tables + body


@pytest.fixture
def write_ser(tmp_path):
    """Factory writing a synthetic SER file and returning its path."""
    counter = {"n": 0}

    def _write(slices, name=None, **kw):
        counter["n"] += 1
        path = tmp_path / (name or f"series_{counter['n']}.ser")
        path.write_bytes(build_ser(slices, **kw))
        return path

    return _write


@pytest.fixture
def three_slices(write_ser):
    return write_ser([make_slice(time=1_500_000_000 + i) for i in range(3)])
