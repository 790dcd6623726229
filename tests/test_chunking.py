import io

import pytest

from photosio.blobs.chunking import iter_file, rechunk


def test_rechunk_exact_sizes():
    out = list(rechunk([b"abc", b"defgh", b"", b"ij"], 4))
    assert out == [b"abcd", b"efgh", b"ij"]


def test_rechunk_exact_multiple_has_no_tail():
    assert list(rechunk([b"abcdefgh"], 4)) == [b"abcd", b"efgh"]


def test_rechunk_empty_stream():
    assert list(rechunk([], 512)) == []
    assert list(rechunk([b"", b""], 512)) == []


def test_rechunk_is_lazy():
    consumed = []

    def source():
        for piece in (b"aa", b"bb", b"cc"):
            consumed.append(piece)
            yield piece

    chunks = rechunk(source(), 2)
    assert next(chunks) == b"aa"
    assert consumed == [b"aa"]


def test_rechunk_rejects_bad_size():
    with pytest.raises(ValueError):
        list(rechunk([b"a"], 0))


def test_iter_file():
    fp = io.BytesIO(b"0123456789")
    assert list(iter_file(fp, 4)) == [b"0123", b"4567", b"89"]
