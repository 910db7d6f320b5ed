"""测试 serialize：SRT 时间码、BOM、文件名、各格式往返"""
import json

import pytest

from subkit.errors import SerializationError, UnsupportedFormatError
from subkit.pipeline.processors.parse import parse
from subkit.pipeline.processors.serialize import (
    UTF8_BOM,
    content_type,
    format_time,
    output_filename,
    serialize,
    serialize_download,
    uses_bom,
)
from subkit.schema import Caption

WIRE = [
    {"index": 1, "start": 1000, "end": 2500, "content": "Hello"},
    {"index": 2, "start": 3000, "end": 4000, "content": "World"},
]


def test_format_time():
    assert format_time(0) == "00:00:00,000"
    assert format_time(3_661_001) == "01:01:01,001"
    assert format_time(59_999) == "00:00:59,999"
    assert format_time(100 * 3_600_000) == "100:00:00,000"


def test_srt_blocks_exact():
    data = serialize(WIRE, "srt")
    assert data == UTF8_BOM + (
        "1\n00:00:01,000 --> 00:00:02,500\nHello\n"
        "\n"
        "2\n00:00:03,000 --> 00:00:04,000\nWorld\n"
    ).encode("utf-8")


def test_srt_numbering_ignores_internal_index():
    captions = [
        Caption(index=5, start_ms=0, end_ms=1000, content="a"),
        Caption(index=9, start_ms=1000, end_ms=2000, content="b"),
    ]
    text = serialize(captions, "srt").decode("utf-8-sig")
    assert text.startswith("1\n")
    assert "\n2\n00:00:01,000" in text


def test_bom_only_on_text_formats():
    for fmt in ("srt", "vtt", "sbv", "lrc", "smi", "ass", "ssa", "sub"):
        assert uses_bom(fmt)
        assert serialize(WIRE, fmt).startswith(UTF8_BOM)
    assert not uses_bom("json")
    assert not serialize(WIRE, "json").startswith(UTF8_BOM)


def test_content_types():
    assert content_type("srt") == "application/x-subrip"
    assert content_type("vtt") == "text/vtt"
    assert content_type("json") == "application/json"
    assert content_type("ass") == "text/plain"
    with pytest.raises(UnsupportedFormatError):
        content_type("docx")


def test_unknown_format_fails_before_output():
    with pytest.raises(UnsupportedFormatError):
        serialize(WIRE, "docx")


def test_output_filename():
    assert output_filename("movie.srt", "vtt") == "movie-subtitletranslatorai.com.vtt"
    assert output_filename("movie.final.srt", "json") == "movie.final-subtitletranslatorai.com.json"
    assert output_filename("noext", "srt", brand_suffix="x") == "noext-x.srt"


def test_inconsistent_timing_is_serialization_error():
    bad = [{"index": 1, "start": 5000, "end": 1000, "content": "oops"}]
    with pytest.raises(SerializationError) as exc:
        serialize(bad, "srt")
    assert "Inconsistent timing" in exc.value.message


def test_meta_entries_skipped_by_default():
    source = WIRE + [{"type": "meta", "content": "ar:Someone"}]
    text = serialize(source, "srt").decode("utf-8-sig")
    assert "ar:Someone" not in text
    meta_text = serialize(source, "lrc", include_meta=True).decode("utf-8-sig")
    assert "[ar:Someone]" in meta_text


def test_serialize_download():
    result = serialize_download(WIRE, "vtt", "clip.srt")
    assert result.content_type == "text/vtt"
    assert result.filename == "clip-subtitletranslatorai.com.vtt"
    assert result.uses_bom
    assert result.data.startswith(UTF8_BOM + b"WEBVTT")


def test_json_output_is_wire_format():
    data = json.loads(serialize(WIRE, "json"))
    assert data[0] == {
        "type": "caption",
        "index": 1,
        "start": 1000,
        "end": 2500,
        "duration": 1500,
        "content": "Hello",
        "text": "Hello",
    }


@pytest.mark.parametrize("fmt", ["srt", "vtt", "sbv", "json", "ass", "ssa"])
def test_round_trip_keeps_timing_and_text(fmt):
    doc = parse(serialize(WIRE, fmt), f"out.{fmt}")
    assert doc.source_format == fmt
    assert [(c.start_ms, c.end_ms, c.content) for c in doc] == [
        (1000, 2500, "Hello"),
        (3000, 4000, "World"),
    ]


def test_lrc_round_trip_keeps_starts():
    doc = parse(serialize(WIRE, "lrc"), "out.lrc")
    assert [(c.start_ms, c.content) for c in doc] == [(1000, "Hello"), (3000, "World")]


def test_microdvd_round_trip_on_frame_boundaries():
    # 25 fps：40ms 一帧，时间取整帧
    wire = [
        {"index": 1, "start": 1000, "end": 2520, "content": "Hello"},
        {"index": 2, "start": 3000, "end": 4000, "content": "World"},
    ]
    data = serialize(wire, "sub")
    assert data.decode("utf-8-sig").startswith("{0}{0}25")
    doc = parse(data, "out.sub")
    assert doc.source_format == "sub"
    assert [(c.start_ms, c.end_ms, c.content) for c in doc] == [
        (1000, 2520, "Hello"),
        (3000, 4000, "World"),
    ]


def test_wire_dicts_are_sanitized():
    source = [{"index": 1, "start": 0, "end": 1000, "content": "<script>alert(1)</script>hi", "text": "<b>hi</b>"}]
    text = serialize(source, "srt").decode("utf-8-sig")
    assert "<" not in text and ">" not in text.replace("-->", "")
    assert "alert(1)hi" in text
    data = json.loads(serialize(source, "json"))
    assert data[0]["content"] == "alert(1)hi"
    assert data[0]["text"] == "hi"
