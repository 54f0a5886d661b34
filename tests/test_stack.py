import threading
import time

import numpy as np
import pytest

import SerReader.stack as stack_mod
from SerReader import read_ser
from SerReader.reader import ByteReader
from SerReader.stack import (
    SliceOk, SliceSkip, SliceFatal, StackSlice, classify, decode_outcome,
)
from SerReader.header import parse_header, read_offset_tables
from SerReader.errors import (
    SERFileNotFoundError,
    InvalidByteOrderError,
    InvalidRangeError,
    UnsupportedPixelTypeError,
    IoFailureError,
    ReconstructionCancelledError,
)

from conftest import make_slice


def test_full_range_reconstruction(three_slices):
    result = read_ser(three_slices)
    assert len(result) == 3
    assert result.indices == [1, 2, 3]
    assert result.skipped == []
    for s in result:
        assert (s.width, s.height) == (4, 4)
        assert s.pixel_format == "uint8"
        assert s.pixels.shape == (4, 4)
    stored = (np.arange(16) % 200).astype(np.uint8).reshape(4, 4)
    np.testing.assert_array_equal(result.data[0], stored[::-1])
    assert result.data.shape == (3, 4, 4)


def test_timestamps_follow_index_order(three_slices):
    result = read_ser(three_slices)
    assert result.timestamps == sorted(result.timestamps)
    assert [s.meta.tag.time for s in result] == [
        1_500_000_000, 1_500_000_001, 1_500_000_002]


def test_calibration_from_first_slice(write_ser):
    path = write_ser([make_slice(width=10, height=10, cal_delta=5e-9,
                                 cal_offset=1e-9),
                      make_slice(width=10, height=10, cal_delta=2.0)])
    result = read_ser(path)
    cal = result.calibration
    # 10 x 5 nm = 50 nm wide
    assert cal.unit == "nm"
    assert cal.pixel_width == pytest.approx(5.0)
    assert cal.pixel_height == pytest.approx(5.0)
    assert cal.x_origin == pytest.approx(1.0)
    # every slice keeps its own unit
    assert result[1].unit == "m"


def test_width_mismatch_is_skipped(write_ser, capsys):
    path = write_ser([make_slice(), make_slice(width=5), make_slice()])
    result = read_ser(path, verbose=1)
    assert result.indices == [1, 3]
    assert result.skipped == [2]
    assert result.n_skipped == 1
    assert "[WARNING] Slice 2 skipped" in capsys.readouterr().out


def test_pixel_type_mismatch_is_skipped(write_ser):
    path = write_ser([make_slice(), make_slice(code=2), make_slice()])
    result = read_ser(path)
    assert result.indices == [1, 3]
    assert result.skipped == [2]


def test_equivalent_pixel_codes_are_not_skipped(write_ser):
    path = write_ser([make_slice(code=4), make_slice(code=5)])
    result = read_ser(path)
    assert result.indices == [1, 2]


def test_reference_is_first_selected_slice(write_ser):
    path = write_ser([make_slice(), make_slice(width=6), make_slice(width=6)])
    result = read_ser(path, start=2)
    assert result.indices == [2, 3]
    assert result.skipped == []


def test_subrange_and_increment(write_ser):
    path = write_ser([make_slice(time=i) for i in range(10)])
    result = read_ser(path, start=-8, end=-1, increment=3)
    assert result.indices == [3, 6, 9]
    assert result.selection.start == 3
    assert read_ser(path, start=2, end=10, increment=0).indices == [2]


def test_only_valid_elements_are_selected(write_ser):
    path = write_ser([make_slice(), make_slice()], total=5, valid=2)
    assert read_ser(path, start=-1).indices == [2]
    with pytest.raises(InvalidRangeError):
        read_ser(path, end=3)


def test_unsupported_pixel_type_aborts(write_ser):
    path = write_ser([make_slice(), make_slice(code=9), make_slice()])
    with pytest.raises(UnsupportedPixelTypeError) as exc:
        read_ser(path)
    assert exc.value.index == 2


def test_bad_offset_aborts(write_ser):
    path = write_ser([make_slice(), make_slice()],
                     data_offsets=[None, 10**9])
    with pytest.raises(IoFailureError) as exc:
        read_ser(path)
    assert exc.value.index == 2


def test_oversized_slice_aborts(write_ser):
    path = write_ser([make_slice(),
                      make_slice(width=0xFFFFFFFF, height=0xFFFFFFFF,
                                 code=8, stored=np.zeros((1, 1), "<f8"))])
    with pytest.raises(IoFailureError) as exc:
        read_ser(path)
    assert exc.value.index == 2


def test_metadata_only(three_slices):
    result = read_ser(three_slices, load_data=False)
    assert len(result) == 3
    assert all(s.pixels is None for s in result)
    assert result[0].data_offset > 0
    with pytest.raises(ValueError):
        result.data


def test_parallel_matches_sequential(write_ser):
    slices = [make_slice(time=i) for i in range(9)]
    slices[4] = make_slice(height=3)
    path = write_ser(slices)
    seq = read_ser(path)
    par = read_ser(path, n_workers=3, chunk_size=2)
    assert par.indices == seq.indices == [1, 2, 3, 4, 6, 7, 8, 9]
    assert par.skipped == seq.skipped == [5]
    np.testing.assert_array_equal(par.data, seq.data)


def test_parallel_failure_propagates(write_ser):
    slices = [make_slice() for _ in range(6)]
    slices[3] = make_slice(code=11)
    path = write_ser(slices)
    with pytest.raises(UnsupportedPixelTypeError) as exc:
        read_ser(path, n_workers=2, chunk_size=1)
    assert exc.value.index == 4


def test_parallel_raises_lowest_failing_index(write_ser, monkeypatch):
    slices = [make_slice() for _ in range(6)]
    slices[1] = make_slice(code=9)
    slices[4] = make_slice(code=9)
    path = write_ser(slices)
    with pytest.raises(UnsupportedPixelTypeError) as exc:
        read_ser(path)
    assert exc.value.index == 2

    # first chunk (slices 1-2) finishes after the last one (5-6)
    decode = stack_mod.decode_outcome

    def slow_first_chunk(reader, tables, index, load_data=True):
        if index <= 2:
            time.sleep(0.3)
        return decode(reader, tables, index, load_data)

    monkeypatch.setattr(stack_mod, "decode_outcome", slow_first_chunk)
    with pytest.raises(UnsupportedPixelTypeError) as exc:
        read_ser(path, n_workers=3, chunk_size=2)
    assert exc.value.index == 2


@pytest.mark.parametrize("n_workers", [1, 2])
def test_cancelled_reconstruction(three_slices, n_workers):
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(ReconstructionCancelledError):
        read_ser(three_slices, cancel=cancel, n_workers=n_workers,
                 chunk_size=1)


def test_invalid_worker_count(three_slices):
    with pytest.raises(ValueError):
        read_ser(three_slices, n_workers=0)


@pytest.fixture
def close_calls(monkeypatch):
    calls = []
    original = ByteReader.close

    def counting_close(self):
        if self._fh is not None:
            calls.append(self.path)
        original(self)

    monkeypatch.setattr(ByteReader, "close", counting_close)
    return calls


def test_reader_closed_after_success(three_slices, close_calls):
    read_ser(three_slices)
    assert close_calls == [str(three_slices)]


def test_reader_closed_after_header_failure(write_ser, close_calls):
    path = write_ser([make_slice()], byte_order=0x4D4D)
    with pytest.raises(InvalidByteOrderError):
        read_ser(path)
    assert len(close_calls) == 1


def test_reader_closed_after_range_failure(three_slices, close_calls):
    with pytest.raises(InvalidRangeError):
        read_ser(three_slices, start=3, end=1)
    assert len(close_calls) == 1


def test_reader_closed_after_slice_failure(write_ser, close_calls):
    path = write_ser([make_slice(), make_slice(code=9)])
    with pytest.raises(UnsupportedPixelTypeError):
        read_ser(path)
    assert len(close_calls) == 1


def test_missing_file(tmp_path, close_calls):
    with pytest.raises(SERFileNotFoundError):
        read_ser(tmp_path / "missing.ser")
    with pytest.raises(FileNotFoundError):
        read_ser(tmp_path / "missing.ser")
    assert close_calls == []


def test_tagged_outcomes(write_ser):
    path = write_ser([make_slice(), make_slice(width=2), make_slice(code=0)])
    with ByteReader(path) as r:
        tables = read_offset_tables(r, parse_header(r))
        first = decode_outcome(r, tables, 1)
        second = decode_outcome(r, tables, 2, load_data=False)
        third = decode_outcome(r, tables, 3)

    assert isinstance(first, SliceOk)
    assert isinstance(first.slice, StackSlice)
    ref = (first.slice.width, first.slice.height, first.slice.dtype)
    assert classify(first, ref) is first
    assert classify(first, None) is first

    skip = classify(second, ref)
    assert isinstance(skip, SliceSkip)
    assert skip.index == 2

    assert isinstance(third, SliceFatal)
    assert third.index == 3
    assert isinstance(third.error, UnsupportedPixelTypeError)
    assert classify(third, ref) is third
