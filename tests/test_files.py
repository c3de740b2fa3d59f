import base64
import re
from datetime import datetime, timezone

from catcore.memory.files import (
    archive_raw,
    move_dir,
    read_index,
    read_optional_file,
    read_short_term,
    safe_split_point,
    sanitize_id,
    token_estimate,
    write_index,
    write_short_term,
)
from catcore.memory.tier import MemoryEntry, MemoryIndex, Message, Role


def test_token_estimate_empty_and_additive():
    a = [Message.user("hello world")]
    b = [Message.assistant("x" * 400)]
    assert token_estimate([]) == 0
    assert token_estimate(a + b) == token_estimate(a) + token_estimate(b)
    assert token_estimate(b) > token_estimate([Message.assistant("x")])


def test_sanitize_id():
    assert sanitize_id("a/b.c") == "a_b_c"
    assert sanitize_id("thread-1_ok") == "thread-1_ok"


def test_index_round_trip(tmp_path):
    idx = MemoryIndex([
        MemoryEntry("u1", datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc), "preview")
    ])
    write_index(tmp_path / "mid", idx)
    loaded = read_index(tmp_path / "mid")
    assert [e.uuid for e in loaded.entries] == ["u1"]
    assert loaded.entries[0].created_at == idx.entries[0].created_at
    assert loaded.entries[0].preview == "preview"


def test_read_index_missing_is_empty(tmp_path):
    assert read_index(tmp_path / "nothing").entries == []


def test_short_term_round_trip(tmp_path):
    path = tmp_path / "t" / "short_term.jsonl"
    msgs = [Message.user("hi"), Message.assistant("hello")]
    write_short_term(path, msgs)
    loaded = read_short_term(path)
    assert [(m.role, m.content) for m in loaded] == [(m.role, m.content) for m in msgs]


def test_short_term_blob_round_trip(tmp_path):
    path = tmp_path / "t" / "short_term.jsonl"
    payload = base64.b64encode(b"\x89PNG fake image bytes").decode()
    url = f"data:image/png;base64,{payload}"
    write_short_term(path, [Message.user(url)])
    assert payload not in path.read_text(encoding="utf-8")
    assert len(list((tmp_path / "t" / "blobs").iterdir())) == 1
    assert read_short_term(path)[0].content == url


def test_read_short_term_drops_leading_orphans_and_bad_lines(tmp_path):
    path = tmp_path / "short_term.jsonl"
    write_short_term(path, [Message(Role.TOOL, "orphan"), Message.assistant("a"),
                            Message.user("u"), Message.assistant("b")])
    with path.open("a", encoding="utf-8") as fh:
        fh.write("not json\n\n")
    loaded = read_short_term(path)
    assert [m.content for m in loaded] == ["u", "b"]


def test_read_short_term_missing(tmp_path):
    assert read_short_term(tmp_path / "missing.jsonl") == []


def test_archive_raw(tmp_path):
    tier = tmp_path / "thread" / "mid_term"
    path = archive_raw(tier, "abc", [Message.user("q")])
    assert path.parent == tier / "raw" / "abc"
    assert re.fullmatch(r"\d{8}T\d{6}Z\.jsonl", path.name)
    assert read_short_term(path)[0].content == "q"


def test_read_optional_file(tmp_path):
    f = tmp_path / "Soul.md"
    f.write_text("soul", encoding="utf-8")
    assert read_optional_file(f) == "soul"
    assert read_optional_file(tmp_path / "missing.md") is None


def test_move_dir(tmp_path):
    src = tmp_path / "src"
    (src / "sub").mkdir(parents=True)
    (src / "sub" / "f.txt").write_text("data", encoding="utf-8")
    dst = tmp_path / "dest" / "moved"
    dst.parent.mkdir()
    move_dir(src, dst)
    assert not src.exists()
    assert (dst / "sub" / "f.txt").read_text(encoding="utf-8") == "data"


def test_safe_split_point_walks_back_to_user():
    msgs = [Message.user("u1"), Message.assistant("a1"), Message.user("u2"),
            Message.assistant("a2"), Message(Role.TOOL, "t"), Message.assistant("a3")]
    split = safe_split_point(msgs, 4)
    assert split == 2
    assert msgs[split].role in (Role.USER, Role.SYSTEM)


def test_safe_split_point_never_below_one():
    msgs = [Message.user("u"), Message(Role.TOOL, "t"), Message.assistant("a")]
    assert safe_split_point(msgs, 2) == 1
    assert safe_split_point([Message.user("only")], 5) == 1