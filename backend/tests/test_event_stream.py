from services.event_stream import EventStreamParser, encode_event, format_event, parse_block


def test_format_event_json_payload():
    block = format_event("progress", {"type": "progress", "current": 1, "total": 2})

    assert block == 'event: progress\ndata: {"type":"progress","current":1,"total":2}\n\n'


def test_format_event_raw_text_payload():
    block = format_event("complete", "symbol,date\nAAPL,2023-01-03")

    assert block == "event: complete\ndata: symbol,date\nAAPL,2023-01-03\n\n"
    assert encode_event("complete", "x") == b"event: complete\ndata: x\n\n"


def test_parser_keeps_partial_block_buffered():
    parser = EventStreamParser()

    assert parser.feed("event: progress\ndata: {\"current\":1}") == []
    assert parser.feed("\n") == []

    events = parser.feed("\nevent: progress\nda")

    assert [(e.name, e.json()) for e in events] == [("progress", {"current": 1})]
    assert parser.pending == "event: progress\nda"


def test_parser_handles_several_blocks_in_one_chunk():
    parser = EventStreamParser()
    body = format_event("progress", {"current": 1}) + format_event("progress", {"current": 2})

    events = parser.feed(body)

    assert [e.json()["current"] for e in events] == [1, 2]
    assert parser.pending == ""


def test_parser_skips_malformed_blocks():
    parser = EventStreamParser()

    events = parser.feed("event: progress\n\ndata: {}\n\nnoise\n\nevent: error\ndata: {\"error\":\"x\"}\n\n")

    assert [e.name for e in events] == ["error"]


def test_multiline_data_stays_in_one_event():
    event = parse_block("event: complete\ndata: symbol,date\nAAPL,2023-01-03\nAAPL,2023-01-04")

    assert event is not None
    assert event.name == "complete"
    assert event.data.split("\n") == ["symbol,date", "AAPL,2023-01-03", "AAPL,2023-01-04"]


def test_parse_block_requires_both_lines():
    assert parse_block("event: progress") is None
    assert parse_block("data: {}") is None
    assert parse_block("event: \ndata: {}") is None
