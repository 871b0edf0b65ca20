"""Tests for stdio framing and SSE formatting."""

import json

import pytest

from chat_hitl.codec import (
    FRAMED,
    LINES,
    FrameDecoder,
    decode_body,
    encode_frame,
    sse_comment,
    sse_event,
)
from chat_hitl.errors import PARSE_ERROR, RpcError


def framed(message: dict) -> bytes:
    body = json.dumps(message, ensure_ascii=False).encode("utf-8")
    return b"Content-Length: %d\r\n\r\n" % len(body) + body


class TestFrameDecoder:
    def test_single_frame(self):
        decoder = FrameDecoder()
        frames = decoder.feed(framed({"jsonrpc": "2.0", "id": 1, "method": "initialize"}))
        assert len(frames) == 1
        assert frames[0].framing == FRAMED
        assert json.loads(frames[0].body)["method"] == "initialize"

    def test_frame_split_across_chunks(self):
        data = framed({"jsonrpc": "2.0", "id": 1, "method": "tools/list"})
        decoder = FrameDecoder()
        assert decoder.feed(data[:7]) == []
        assert decoder.feed(data[7:30]) == []
        frames = decoder.feed(data[30:])
        assert [json.loads(f.body)["method"] for f in frames] == ["tools/list"]

    def test_several_frames_in_one_chunk(self):
        data = b"".join(framed({"id": i, "method": "m"}) for i in range(3))
        frames = FrameDecoder().feed(data)
        assert [json.loads(f.body)["id"] for f in frames] == [0, 1, 2]

    def test_length_counts_bytes_not_characters(self):
        message = {"id": 1, "method": "tools/call", "params": {"arguments": {"reason": "完成了"}}}
        frames = FrameDecoder().feed(framed(message) + framed({"id": 2, "method": "m"}))
        assert json.loads(frames[0].body) == message
        assert json.loads(frames[1].body)["id"] == 2

    def test_header_case_and_extra_headers(self):
        body = b'{"id": 1, "method": "m"}'
        data = b"Content-Type: application/json\r\ncontent-length: %d\r\n\r\n" % len(body) + body
        frames = FrameDecoder().feed(data)
        assert frames[0].body == body

    def test_header_without_length_is_skipped(self):
        data = b"X-Junk: 1\r\n\r\n" + framed({"id": 7, "method": "m"})
        frames = FrameDecoder().feed(data)
        assert [json.loads(f.body)["id"] for f in frames] == [7]

    def test_newline_delimited_json(self):
        decoder = FrameDecoder()
        assert decoder.feed(b'{"id": 1, "method": "a"}\n{"id": 2,') != []
        frames = decoder.feed(b' "method": "b"}\n')
        assert frames[0].framing == LINES
        assert json.loads(frames[0].body)["method"] == "b"

    def test_garbage_line_is_returned_for_parse_error(self):
        frames = FrameDecoder().feed(b"not json\n")
        assert frames[0].body == b"not json"
        with pytest.raises(RpcError):
            decode_body(frames[0].body)


class TestEncodeFrame:
    def test_content_length_frame(self):
        data = encode_frame({"jsonrpc": "2.0", "id": 1, "result": {"text": "é"}})
        header, body = data.split(b"\r\n\r\n", 1)
        assert header == b"Content-Length: %d" % len(body)
        assert json.loads(body)["result"]["text"] == "é"

    def test_line_frame(self):
        data = encode_frame({"id": 1}, LINES)
        assert data.endswith(b"\n")
        assert b"Content-Length" not in data

    def test_decoder_reads_what_encoder_writes(self):
        message = {"jsonrpc": "2.0", "id": "x", "result": {}}
        frames = FrameDecoder().feed(encode_frame(message))
        assert decode_body(frames[0].body) == message


def test_decode_body_parse_error():
    with pytest.raises(RpcError) as exc:
        decode_body(b"{not json")
    assert exc.value.code == PARSE_ERROR
    assert exc.value.to_response()["id"] is None


class TestSse:
    def test_endpoint_event(self):
        assert sse_event("http://127.0.0.1:1/messages", event="endpoint") == (
            "event: endpoint\ndata: http://127.0.0.1:1/messages\n\n"
        )

    def test_json_event(self):
        frame = sse_event({"id": 1}, event="message")
        assert frame.startswith("event: message\ndata: ")
        assert json.loads(frame.split("data: ", 1)[1]) == {"id": 1}

    def test_multiline_data(self):
        assert sse_event("a\nb") == "data: a\ndata: b\n\n"

    def test_comment(self):
        assert sse_comment("ping") == ": ping\n\n"
