from loguru import logger

from autocraft.modules.crafter.events import LoguruEventSink, emit


def _capture():
    records = []
    sink_id = logger.add(lambda m: records.append(m.record), level="DEBUG")
    return records, sink_id


def test_loguru_sink_maps_levels():
    records, sink_id = _capture()
    try:
        sink = LoguruEventSink(run="r1")
        sink.emit("found it", "success")
        sink.emit("careful", "warning")
        sink.emit("fallback level", "loud")
    finally:
        logger.remove(sink_id)

    assert [(r["level"].name, r["message"]) for r in records] == [
        ("SUCCESS", "found it"),
        ("WARNING", "careful"),
        ("INFO", "fallback level"),
    ]
    assert records[0]["extra"]["run"] == "r1"


class _BrokenSink:
    def emit(self, message, level="info"):
        raise RuntimeError("ui closed")


def test_emit_swallows_sink_errors():
    records, sink_id = _capture()
    try:
        emit(_BrokenSink(), "hello", "info")
    finally:
        logger.remove(sink_id)

    assert any("event sink failed" in r["message"] for r in records)


def test_emit_without_sink_is_noop():
    emit(None, "nobody listens")
