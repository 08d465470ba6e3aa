"""State machine tests for ``SessionController``.

Covers live completion, idempotent resume after a drop, fallback to polling,
poll budget exhaustion, fatal drops without background mode, upstream error
events, continuation reset, start-phase retry and cancellation.
"""
from __future__ import annotations

import time

import pytest

from responses_stream.base.cancellation import CancellationToken, CancelledError
from responses_stream.base.chunks import ErrorChunk, StatusChunk, StatusPhase, UsageChunk
from responses_stream.base.errors import ErrorCode, ProviderError
from responses_stream.base.models import GenerationRequest, ModelCapabilities, ModelInfo, Turn
from responses_stream.base.resilience.retry import RetryConfig
from responses_stream.config.settings import BackgroundSettings
from responses_stream.session.controller import SessionController
from responses_stream.session.state import Phase
from responses_stream.session.stream import GenerationStream
from responses_stream.tests.helpers import (
    FakeTransport,
    Script,
    completed,
    created,
    delta,
    drop_error,
    http_error,
    in_progress,
    queued,
    statuses,
    texts,
)


def _stream(
    transport,
    *,
    background=False,
    request=None,
    settings=None,
    wait=None,
    clock=None,
    token=None,
    start_retry=None,
):
    caps = ModelCapabilities(background_mode_default=background)
    model = ModelInfo(id="gpt-test", capabilities=caps, input_price=1.0, output_price=2.0)
    req = request or GenerationRequest(model="gpt-test", turns=(Turn.text("user", "hi"),))
    controller = SessionController(
        transport,
        req,
        model=model,
        background=settings or BackgroundSettings(),
        start_retry=start_retry,
        token=token,
        wait=wait,
        clock=clock or time.monotonic,
    )
    return GenerationStream(controller)


def _drain_failure(stream, exc_type=ProviderError):
    chunks = []
    with pytest.raises(exc_type) as ei:
        for chunk in stream:
            chunks.append(chunk)
    return chunks, ei.value


def test_live_stream_without_background_completes_with_single_usage(fake_wait):
    transport = FakeTransport(creates=[Script([delta(0, "Hello"), delta(1, " world"), completed(2)])])
    stream = _stream(transport, wait=fake_wait)

    chunks = list(stream)

    assert texts(chunks) == "Hello world"  # nosec B101
    assert statuses(chunks) == []  # nosec B101
    assert [c for c in chunks if isinstance(c, UsageChunk)] == [chunks[-1]]  # nosec B101
    assert chunks[-1].input_tokens == 10 and chunks[-1].output_tokens == 2  # nosec B101
    assert stream.phase is Phase.COMPLETED  # nosec B101
    assert transport.streams[0].closed is True  # nosec B101


def test_background_statuses_are_reported_in_order(fake_wait):
    events = [created(0), queued(1), in_progress(2), delta(3, "Hi"), completed(4)]
    transport = FakeTransport(creates=[Script(events)])

    chunks = list(_stream(transport, background=True, wait=fake_wait))

    assert statuses(chunks) == ["queued", "in_progress", "completed"]  # nosec B101
    status_chunks = [c for c in chunks if isinstance(c, StatusChunk)]
    assert all(c.response_id == "resp_1" for c in status_chunks)  # nosec B101
    assert isinstance(chunks[-2], UsageChunk)  # nosec B101
    assert chunks[-1] == StatusChunk(phase=StatusPhase.COMPLETED, response_id="resp_1")  # nosec B101
    assert transport.create_bodies[0]["store"] is True  # nosec B101
    assert transport.create_bodies[0]["background"] is True  # nosec B101


def test_resume_skips_replayed_sequence_and_delivers_new_content_once(fake_wait):
    transport = FakeTransport(
        creates=[Script([created(0), delta(1, "Hello"), delta(2, " ")], error=drop_error())],
        resumes=[Script([delta(2, "SHOULD_SKIP"), delta(3, "world"), completed(4)])],
    )

    chunks = list(_stream(transport, background=True, wait=fake_wait))

    assert texts(chunks) == "Hello world"  # nosec B101
    assert transport.resume_calls == [("resp_1", 2)]  # nosec B101
    assert statuses(chunks) == ["reconnecting", "completed"]  # nosec B101
    reconnect_at = next(i for i, c in enumerate(chunks) if isinstance(c, StatusChunk))
    world_at = next(i for i, c in enumerate(chunks) if getattr(c, "content", None) == "world")
    assert reconnect_at < world_at  # nosec B101
    assert sum(isinstance(c, UsageChunk) for c in chunks) == 1  # nosec B101
    assert fake_wait.delays == [1.0]  # nosec B101


@pytest.mark.parametrize("drop_after", [1, 2, 3, 4])
def test_resume_output_matches_uninterrupted_run(fake_wait, drop_after):
    events = [created(0)] + [delta(i, f"t{i}") for i in range(1, 6)] + [completed(6)]
    baseline = list(_stream(FakeTransport(creates=[Script(events)]), background=True, wait=fake_wait))

    # Replay starts one event before the drop point to simulate server overlap.
    transport = FakeTransport(
        creates=[Script(events[: drop_after + 1], error=drop_error())],
        resumes=[Script(events[drop_after:])],
    )
    resumed = list(_stream(transport, background=True, wait=fake_wait))

    assert texts(resumed) == texts(baseline)  # nosec B101
    assert [c for c in resumed if c.type == "text"] == [c for c in baseline if c.type == "text"]  # nosec B101


def test_clean_close_without_completion_counts_as_drop_in_background(fake_wait):
    transport = FakeTransport(
        creates=[Script([created(0), delta(1, "a")])],
        resumes=[Script([delta(2, "b"), completed(3)])],
    )

    chunks = list(_stream(transport, background=True, wait=fake_wait))

    assert texts(chunks) == "ab"  # nosec B101
    assert transport.resume_calls == [("resp_1", 1)]  # nosec B101


def test_exhausted_resume_falls_back_to_polling(fake_wait):
    transport = FakeTransport(
        creates=[Script([created(0), delta(1, "Pol")], error=drop_error())],
        resumes=[http_error(500, ErrorCode.SERVER_ERROR)] * 3,
        polls=[
            {"response": {"id": "resp_1", "status": "queued"}},
            {"id": "resp_1", "status": "in_progress"},
            {
                "response": {
                    "id": "resp_1",
                    "status": "completed",
                    "output": [{"type": "message", "content": [{"type": "output_text", "text": "Polled result"}]}],
                    "usage": {"input_tokens": 7, "output_tokens": 3},
                }
            },
        ],
    )

    chunks = list(_stream(transport, background=True, wait=fake_wait))

    assert texts(chunks) == "Polled result"  # nosec B101
    assert statuses(chunks) == [  # nosec B101
        "reconnecting",
        "reconnecting",
        "reconnecting",
        "polling",
        "queued",
        "in_progress",
        "completed",
    ]
    usage = [c for c in chunks if isinstance(c, UsageChunk)]
    assert len(usage) == 1 and (usage[0].input_tokens, usage[0].output_tokens) == (7, 3)  # nosec B101
    assert len(transport.resume_calls) == 3  # nosec B101
    assert fake_wait.delays == [1.0, 2.0, 4.0, 2.0, 2.0]  # nosec B101


def test_resume_with_progress_resets_attempt_budget(fake_wait):
    settings = BackgroundSettings(max_resume_retries=1)
    transport = FakeTransport(
        creates=[Script([created(0), delta(1, "a")], error=drop_error())],
        resumes=[
            Script([delta(2, "b")], error=drop_error()),
            Script([delta(3, "c"), completed(4)]),
        ],
    )

    chunks = list(_stream(transport, background=True, settings=settings, wait=fake_wait))

    assert texts(chunks) == "abc"  # nosec B101
    assert transport.resume_calls == [("resp_1", 1), ("resp_1", 2)]  # nosec B101
    assert "polling" not in statuses(chunks)  # nosec B101


def test_poll_budget_exhaustion_is_fatal_with_phase_and_id(fake_clock):
    def wait(seconds: float) -> bool:
        fake_clock.advance(seconds)
        return False

    settings = BackgroundSettings(max_resume_retries=0, poll_interval_seconds=2.0, poll_max_seconds=5.0)
    transport = FakeTransport(
        creates=[Script([created(0)], error=drop_error())],
        polls=[{"id": "resp_1", "status": "in_progress"}] * 3,
    )

    chunks, exc = _drain_failure(
        _stream(transport, background=True, settings=settings, wait=wait, clock=fake_clock)
    )

    assert exc.code is ErrorCode.TIMEOUT  # nosec B101
    assert "resp_1" in exc.message and "polling" in exc.message  # nosec B101
    assert len(transport.poll_calls) == 3  # nosec B101
    assert isinstance(chunks[-1], ErrorChunk)  # nosec B101
    assert chunks[-1].message == exc.message  # nosec B101


def test_poll_transport_errors_are_retried_within_budget(fake_wait):
    settings = BackgroundSettings(max_resume_retries=0)
    transport = FakeTransport(
        creates=[Script([created(0)], error=drop_error())],
        polls=[
            drop_error("poll reset"),
            {"id": "resp_1", "status": "completed", "usage": {"input_tokens": 1, "output_tokens": 1}},
        ],
    )

    chunks = list(_stream(transport, background=True, settings=settings, wait=fake_wait))

    assert statuses(chunks) == ["polling", "completed"]  # nosec B101
    assert len(transport.poll_calls) == 2  # nosec B101


def test_poll_reports_in_progress_again_after_live_in_progress(fake_wait):
    settings = BackgroundSettings(max_resume_retries=0)
    transport = FakeTransport(
        creates=[Script([created(0), in_progress(1), delta(2, "a")], error=drop_error())],
        polls=[
            {"id": "resp_1", "status": "in_progress"},
            {"id": "resp_1", "status": "in_progress"},
            {"id": "resp_1", "status": "completed", "usage": {"input_tokens": 1, "output_tokens": 1}},
        ],
    )

    chunks = list(_stream(transport, background=True, settings=settings, wait=fake_wait))

    assert statuses(chunks) == ["in_progress", "polling", "in_progress", "completed"]  # nosec B101
    assert len(transport.poll_calls) == 3  # nosec B101


def test_failed_poll_status_is_fatal(fake_wait):
    settings = BackgroundSettings(max_resume_retries=0)
    transport = FakeTransport(
        creates=[Script([created(0)], error=drop_error())],
        polls=[{"id": "resp_1", "status": "failed", "error": {"message": "model crashed"}}],
    )

    chunks, exc = _drain_failure(_stream(transport, background=True, settings=settings, wait=fake_wait))

    assert exc.message == "Responses API error: model crashed"  # nosec B101
    assert isinstance(chunks[-1], ErrorChunk)  # nosec B101


def test_drop_without_background_is_fatal_and_never_resumes(fake_wait):
    transport = FakeTransport(creates=[Script([created(0), delta(1, "Hi")], error=drop_error())])

    chunks, exc = _drain_failure(_stream(transport, wait=fake_wait))

    assert texts(chunks) == "Hi"  # nosec B101
    assert statuses(chunks) == []  # nosec B101
    assert transport.resume_calls == [] and transport.poll_calls == []  # nosec B101
    assert isinstance(chunks[-1], ErrorChunk) and chunks[-1].retryable is True  # nosec B101
    assert exc.code is ErrorCode.TRANSIENT  # nosec B101


def test_clean_close_without_background_completes_with_zero_usage(fake_wait):
    transport = FakeTransport(creates=[Script([delta(0, "x")])])

    chunks = list(_stream(transport, wait=fake_wait))

    assert texts(chunks) == "x"  # nosec B101
    assert isinstance(chunks[-1], UsageChunk)  # nosec B101
    assert (chunks[-1].input_tokens, chunks[-1].output_tokens) == (0, 0)  # nosec B101


def test_upstream_error_event_triggers_resume_in_background(fake_wait):
    error_event = {"type": "error", "sequence_number": 2, "error": {"message": "overloaded"}}
    transport = FakeTransport(
        creates=[Script([created(0), delta(1, "A"), error_event])],
        resumes=[Script([delta(3, "B"), completed(4)])],
    )

    chunks = list(_stream(transport, background=True, wait=fake_wait))

    assert texts(chunks) == "AB"  # nosec B101
    assert transport.resume_calls == [("resp_1", 2)]  # nosec B101
    assert not any(isinstance(c, ErrorChunk) for c in chunks)  # nosec B101


def test_upstream_error_event_is_fatal_without_background(fake_wait):
    transport = FakeTransport(
        creates=[Script([delta(0, "A"), {"type": "response.error", "error": {"message": "bad"}}])]
    )

    chunks, exc = _drain_failure(_stream(transport, wait=fake_wait))

    assert exc.code is ErrorCode.UPSTREAM  # nosec B101
    assert chunks[-1] == ErrorChunk(message="Responses API error: bad", retryable=False)  # nosec B101


def test_drop_before_response_id_is_fatal(fake_wait):
    transport = FakeTransport(creates=[Script([], error=drop_error())])

    chunks, exc = _drain_failure(_stream(transport, background=True, wait=fake_wait))

    assert "response id" in exc.message  # nosec B101
    assert statuses(chunks) == []  # nosec B101
    assert transport.resume_calls == []  # nosec B101


def test_changed_response_id_on_resume_is_a_protocol_error(fake_wait):
    transport = FakeTransport(
        creates=[Script([created(0), delta(1, "a")], error=drop_error())],
        resumes=[Script([completed(2, rid="resp_other")])],
    )

    chunks, exc = _drain_failure(_stream(transport, background=True, wait=fake_wait))

    assert exc.code is ErrorCode.PROTOCOL  # nosec B101
    assert "resp_other" in exc.message  # nosec B101
    assert isinstance(chunks[-1], ErrorChunk)  # nosec B101


def test_continuation_is_cleared_and_retried_once_on_invalid_request(fake_wait):
    request = GenerationRequest(
        model="gpt-test",
        turns=(Turn.text("user", "first"), Turn.text("assistant", "ok"), Turn.text("user", "second")),
        previous_response_id="resp_prev",
    )
    transport = FakeTransport(
        creates=[http_error(400, ErrorCode.VALIDATION), Script([delta(0, "ok"), completed(1)])]
    )

    chunks = list(_stream(transport, request=request, wait=fake_wait))

    assert texts(chunks) == "ok"  # nosec B101
    first, second = transport.create_bodies
    assert first["previous_response_id"] == "resp_prev" and len(first["input"]) == 1  # nosec B101
    assert "previous_response_id" not in second and len(second["input"]) == 3  # nosec B101


def test_invalid_request_without_continuation_is_not_retried(fake_wait):
    transport = FakeTransport(creates=[http_error(400, ErrorCode.VALIDATION, "Invalid request to Responses API")])

    chunks, exc = _drain_failure(_stream(transport, wait=fake_wait))

    assert exc.status == 400  # nosec B101
    assert len(transport.create_bodies) == 1  # nosec B101
    assert chunks == [ErrorChunk(message="Invalid request to Responses API", retryable=False)]  # nosec B101


def test_start_phase_retries_server_errors(fake_wait):
    transport = FakeTransport(
        creates=[http_error(503, ErrorCode.UNAVAILABLE), Script([delta(0, "ok"), completed(1)])]
    )
    retry_cfg = RetryConfig(max_attempts=2, base_delay=0.5)

    chunks = list(_stream(transport, wait=fake_wait, start_retry=retry_cfg))

    assert texts(chunks) == "ok"  # nosec B101
    assert fake_wait.delays == [0.5]  # nosec B101
    assert transport.create_bodies[0] == transport.create_bodies[1]  # nosec B101


def test_cancel_during_backoff_stops_without_reconnecting(fake_wait):
    token = CancellationToken()
    fake_wait.token = token
    fake_wait.cancel_on_call = 1
    transport = FakeTransport(
        creates=[Script([created(0), delta(1, "a")], error=drop_error())],
        resumes=[Script([completed(2)])],
    )

    chunks, _ = _drain_failure(_stream(transport, background=True, wait=fake_wait, token=token), CancelledError)

    assert transport.resume_calls == []  # nosec B101
    assert not any(isinstance(c, ErrorChunk) for c in chunks)  # nosec B101


def test_cancel_mid_stream_closes_connection(fake_wait):
    transport = FakeTransport(creates=[Script([delta(0, "a"), delta(1, "b"), completed(2)])])
    stream = _stream(transport, background=True, wait=fake_wait)

    first = next(stream)
    stream.cancel("user abort")

    with pytest.raises(CancelledError):
        next(stream)
    assert first.content == "a"  # nosec B101
    assert transport.streams[0].closed is True  # nosec B101
    assert transport.resume_calls == []  # nosec B101
    assert stream.phase is Phase.FAILED  # nosec B101


def test_cancel_before_start_sends_nothing(fake_wait):
    token = CancellationToken()
    token.cancel("never mind")
    transport = FakeTransport(creates=[Script([completed(0)])])

    with pytest.raises(CancelledError):
        list(_stream(transport, token=token, wait=fake_wait))
    assert transport.create_bodies == []  # nosec B101


def test_session_logs_lifecycle_events(fake_wait, log_capture):
    transport = FakeTransport(
        creates=[Script([created(0), delta(1, "a")], error=drop_error())],
        resumes=[Script([completed(2)])],
    )

    list(_stream(transport, background=True, wait=fake_wait))

    events = log_capture.events()
    assert events[0] == "session.start"  # nosec B101
    assert "session.reconnect" in events and events[-1] == "session.complete"  # nosec B101
    reconnect = next(p for p in log_capture.payloads if p.get("event") == "session.reconnect")
    assert reconnect["attempt"] == 1 and reconnect["starting_after"] == 1  # nosec B101
    assert reconnect["response_id"] == "resp_1"  # nosec B101
