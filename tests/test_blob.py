import base64
import re

from catcore.memory.blob import extract_blobs, restore_blobs

PLACEHOLDER = re.compile(r"\[\[blob:([0-9a-f-]{36}\.[a-z]+)\]\]")


def _data_url(mime, payload):
    return f"data:{mime};base64,{base64.b64encode(payload).decode('ascii')}"


def test_extract_writes_file_and_inserts_placeholder(tmp_path):
    payload = b"\x89PNG\r\n\x1a\nsome image bytes"
    text = '{"url":"' + _data_url("image/png", payload) + '"}'
    blobs = tmp_path / "blobs"

    out = extract_blobs(text, blobs)

    match = PLACEHOLDER.search(out)
    assert match is not None
    filename = match.group(1)
    assert filename.endswith(".png")
    assert out == '{"url":"[[blob:' + filename + ']]"}'
    assert (blobs / filename).read_bytes() == payload


def test_round_trip_restores_original_text(tmp_path):
    payload = bytes(range(256))
    text = "before " + _data_url("image/png", payload) + " after"
    out = extract_blobs(text, tmp_path)
    assert "base64" not in out
    assert restore_blobs(out, tmp_path) == text


def test_round_trip_multiple_blobs(tmp_path):
    first = _data_url("image/gif", b"first payload")
    second = _data_url("image/webp", b"second payload!")
    text = f"a {first} b {second} c"
    out = extract_blobs(text, tmp_path)
    names = PLACEHOLDER.findall(out)
    assert len(names) == 2
    assert len(set(names)) == 2
    assert sorted(p.name for p in tmp_path.iterdir()) == sorted(names)
    assert restore_blobs(out, tmp_path) == text


def test_image_jpg_mime_is_restored_as_jpeg(tmp_path):
    text = _data_url("image/jpg", b"jpeg bytes")
    out = extract_blobs(text, tmp_path)
    assert PLACEHOLDER.fullmatch(out).group(1).endswith(".jpg")
    restored = restore_blobs(out, tmp_path)
    assert restored.startswith("data:image/jpeg;base64,")
    assert base64.b64decode(restored.split(",", 1)[1]) == b"jpeg bytes"


def test_unknown_mime_stored_as_bin(tmp_path):
    text = _data_url("text/plain", b"hello world")
    out = extract_blobs(text, tmp_path)
    assert PLACEHOLDER.fullmatch(out).group(1).endswith(".bin")
    restored = restore_blobs(out, tmp_path)
    assert restored.startswith("data:application/octet-stream;base64,")


def test_text_without_data_urls_is_unchanged(tmp_path):
    text = "plain text with data: but no url, and a colon"
    assert extract_blobs(text, tmp_path / "blobs") == text
    assert not (tmp_path / "blobs").exists()


def test_invalid_padding_is_left_in_place(tmp_path):
    text = "x data:image/png;base64,abc y"
    assert extract_blobs(text, tmp_path / "blobs") == text
    assert not (tmp_path / "blobs").exists()


def test_mime_without_slash_or_with_space_is_left_in_place(tmp_path):
    encoded = base64.b64encode(b"abcdef").decode("ascii")
    for text in (f"data:imagepng;base64,{encoded}", f"data:ima ge/png;base64,{encoded}"):
        assert extract_blobs(text, tmp_path / "blobs") == text
    assert not (tmp_path / "blobs").exists()


def test_marker_too_far_from_prefix_is_ignored(tmp_path):
    encoded = base64.b64encode(b"abcdef").decode("ascii")
    text = "data:image/" + "x" * 120 + ";base64," + encoded
    assert extract_blobs(text, tmp_path / "blobs") == text


def test_empty_payload_is_left_in_place(tmp_path):
    text = '"data:image/png;base64,"'
    assert extract_blobs(text, tmp_path / "blobs") == text


def test_missing_blob_keeps_placeholder(tmp_path):
    text = "see [[blob:missing.png]] here"
    assert restore_blobs(text, tmp_path) == text


def test_unclosed_placeholder_is_kept(tmp_path):
    text = "broken [[blob:abc.png"
    assert restore_blobs(text, tmp_path) == text


def test_restore_jpeg_extension(tmp_path):
    (tmp_path / "pic.jpeg").write_bytes(b"\x00\x01\x02")
    restored = restore_blobs("[[blob:pic.jpeg]]", tmp_path)
    assert restored.startswith("data:image/jpeg;base64,")
    assert base64.b64decode(restored.split(",", 1)[1]) == b"\x00\x01\x02"