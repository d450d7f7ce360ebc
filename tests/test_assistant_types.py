"""Tests for assistant reply decoding."""

from relay.assistant.types import (
    NO_CONTENT_MESSAGE,
    THINKING_HEADER,
    UNEXPECTED_FORMAT_MESSAGE,
    decode_part,
    decode_reply,
    render_reply,
)


class TestDecodeReply:
    def test_info_and_parts_shape(self):
        reply = decode_reply(
            {"info": {"id": "msg_1"}, "parts": [{"type": "text", "text": "hi"}]}
        )
        assert reply.recognized
        assert reply.text_parts == ["hi"]

    def test_bare_list_shape(self):
        reply = decode_reply([{"type": "text", "text": "a"}, {"type": "text", "text": "b"}])
        assert reply.text_parts == ["a", "b"]

    def test_flat_text_shape(self):
        reply = decode_reply({"text": "flat"})
        assert reply.text_parts == ["flat"]

    def test_unknown_shape(self):
        assert decode_reply({"status": "ok"}).recognized is False
        assert decode_reply("nope").recognized is False
        assert decode_reply(None).recognized is False

    def test_unknown_part_types_are_tagged(self):
        part = decode_part({"type": "tool", "tool": "bash"})
        assert part.kind == "unknown"
        assert part.raw_type == "tool"

    def test_non_dict_part(self):
        assert decode_part("text").kind == "unknown"


class TestRenderReply:
    def test_text_parts_joined_by_blank_line(self):
        reply = decode_reply(
            {"parts": [{"type": "text", "text": "one"}, {"type": "text", "text": "two"}]}
        )
        assert render_reply(reply) == "one\n\ntwo"

    def test_tool_parts_are_skipped(self):
        reply = decode_reply(
            {
                "parts": [
                    {"type": "step-start"},
                    {"type": "tool", "state": {"status": "completed"}},
                    {"type": "text", "text": "finished"},
                ]
            }
        )
        assert render_reply(reply) == "finished"

    def test_reasoning_is_quoted(self):
        reply = decode_reply(
            {
                "parts": [
                    {"type": "reasoning", "text": "first\nsecond"},
                    {"type": "text", "text": "answer"},
                ]
            }
        )
        assert render_reply(reply) == (
            f"{THINKING_HEADER}\n> first\n> second\n\nanswer"
        )

    def test_reasoning_only(self):
        reply = decode_reply({"parts": [{"type": "reasoning", "text": "hmm"}]})
        rendered = render_reply(reply)
        assert rendered.startswith(THINKING_HEADER)
        assert NO_CONTENT_MESSAGE not in rendered

    def test_no_text_content(self):
        reply = decode_reply({"parts": [{"type": "tool"}]})
        assert render_reply(reply) == NO_CONTENT_MESSAGE

    def test_empty_text_is_no_content(self):
        reply = decode_reply({"parts": [{"type": "text", "text": ""}]})
        assert render_reply(reply) == NO_CONTENT_MESSAGE

    def test_unrecognized_payload(self):
        assert render_reply(decode_reply(42)) == UNEXPECTED_FORMAT_MESSAGE
