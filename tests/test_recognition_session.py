"""
Tests for per-request recognition orchestration.
"""

import asyncio

import pytest

from zocr.config.ocr_config import DEFAULT_PARAMETERS, Rectangle, RecognitionConfig
from zocr.errors import (
    CapabilityMissingError,
    ConfigurationError,
    EngineFailureError,
    RecognitionTimeoutError,
)
from zocr.schemas.status import StatusNotice
from zocr.services.recognition import RecognitionSession

from fakes import FakeBackend, LibraryBackend, NoRecognizeEngine, TimeoutAwareEngine


class TestRecognitionSession:
    """Recognition flow against fake engines."""

    @pytest.mark.asyncio
    async def test_recognize_with_defaults(self, png_bytes):
        backend = FakeBackend()
        session = RecognitionSession(backend)

        result = await session.recognize(png_bytes)

        assert result.text == "42"
        assert result.language == "eng"
        engine = backend.engines[0]
        assert engine.parameters == DEFAULT_PARAMETERS
        assert engine.rectangles == [None]
        assert session.pool.idle_count == 1
        await session.close()

    @pytest.mark.asyncio
    async def test_parameters_merge_per_key(self, png_bytes):
        backend = FakeBackend()
        session = RecognitionSession(backend)

        await session.recognize(
            png_bytes, {"parameters": {"tessedit_pageseg_mode": "7"}}
        )

        assert backend.engines[0].parameters == {
            "tessedit_char_whitelist": "0123456789",
            "tessedit_pageseg_mode": "7",
        }

    @pytest.mark.asyncio
    async def test_parameters_applied_before_recognition(self, png_bytes):
        backend = FakeBackend()
        session = RecognitionSession(backend)

        await session.recognize(png_bytes, {"lang": "deu"})

        ops = [op for op, _ in backend.log.events]
        assert ops.index("set_parameters") < ops.index("recognize")

    @pytest.mark.asyncio
    async def test_pool_size_hint_resizes_pool(self, png_bytes):
        session = RecognitionSession(FakeBackend())

        await session.recognize(png_bytes, {"pool_size": 3})
        assert session.pool.size == 3

        await session.recognize(png_bytes, {"pool_size": 10})
        assert session.pool.size == 4

    @pytest.mark.asyncio
    async def test_valid_rectangle_is_passed_to_engine(self, png_bytes):
        backend = FakeBackend()
        session = RecognitionSession(backend)

        await session.recognize(
            png_bytes,
            {"rectangle": {"left": 10, "top": 5, "width": 100, "height": 20}},
        )

        assert backend.engines[0].rectangles == [
            Rectangle(left=10, top=5, width=100, height=20)
        ]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "rectangle",
        [
            {"left": 10, "top": 5, "width": "wide", "height": 20},
            {"left": 10, "top": 5, "width": 100.5, "height": 20},
            {"left": 10, "top": 5, "width": 100},
            {"left": True, "top": 5, "width": 100, "height": 20},
            {"left": 0, "top": 0, "width": 0, "height": 20},
        ],
    )
    async def test_malformed_rectangle_uses_full_image(self, png_bytes, rectangle):
        backend = FakeBackend()
        session = RecognitionSession(backend)

        result = await session.recognize(png_bytes, {"rectangle": rectangle})

        assert result.text == "42"
        assert backend.engines[0].rectangles == [None]

    @pytest.mark.asyncio
    async def test_strict_rectangle_fails_before_pool_use(self, png_bytes):
        session = RecognitionSession(
            FakeBackend(), defaults=RecognitionConfig(strict_rectangle=True)
        )

        with pytest.raises(ConfigurationError):
            await session.recognize(
                png_bytes, {"rectangle": {"left": 1, "top": 1, "width": "x"}}
            )

        assert session.pool.size == 0

    @pytest.mark.asyncio
    async def test_timeout_releases_handle(self, png_bytes):
        backend = FakeBackend(recognize_delay=0.5)
        session = RecognitionSession(backend)

        with pytest.raises(RecognitionTimeoutError) as exc_info:
            await session.recognize(png_bytes, {"timeout_ms": 50})

        assert exc_info.value.retryable
        assert session.pool.idle_count == 1
        assert not session.pool.handles[0].busy

    @pytest.mark.asyncio
    async def test_timeout_does_not_affect_other_requests(self, png_bytes):
        backend = FakeBackend(recognize_delay=0.2)
        session = RecognitionSession(backend)

        slow, fast = await asyncio.gather(
            session.recognize(png_bytes, {"pool_size": 2, "timeout_ms": 20}),
            session.recognize(png_bytes, {"pool_size": 2, "timeout_ms": 5000}),
            return_exceptions=True,
        )

        assert isinstance(slow, RecognitionTimeoutError)
        assert fast.text == "42"
        assert session.pool.idle_count == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("timeout_ms", [0, -1])
    async def test_non_positive_timeout_disables_timeout(self, png_bytes, timeout_ms):
        session = RecognitionSession(FakeBackend(recognize_delay=0.1))

        result = await session.recognize(png_bytes, {"timeout_ms": timeout_ms})

        assert result.text == "42"

    @pytest.mark.asyncio
    async def test_timeout_is_passed_to_engines_that_accept_it(self, png_bytes):
        backend = FakeBackend(engine_cls=TimeoutAwareEngine)
        session = RecognitionSession(backend)

        await session.recognize(png_bytes, {"timeout_ms": 1500})
        await session.recognize(png_bytes, {"timeout_ms": 0})

        assert session.pool.handles[0].capabilities.set_timeout
        assert backend.engines[0].timeouts == [1.5, None]

    @pytest.mark.asyncio
    async def test_engine_error_becomes_engine_failure(self, png_bytes):
        session = RecognitionSession(FakeBackend(fail_recognize=True))

        with pytest.raises(EngineFailureError) as exc_info:
            await session.recognize(png_bytes)

        assert exc_info.value.kind == "engine_failure"
        assert session.pool.idle_count == 1

    @pytest.mark.asyncio
    async def test_library_recognize_fallback(self, png_bytes):
        backend = LibraryBackend()
        session = RecognitionSession(backend)

        result = await session.recognize(
            png_bytes,
            {"lang": "fra", "rectangle": {"left": 0, "top": 0, "width": 5, "height": 5}},
        )

        assert result.text == "library"
        call = backend.library_calls[0]
        assert call["language"] == "fra"
        assert call["parameters"] == DEFAULT_PARAMETERS
        assert call["rectangle"] == Rectangle(left=0, top=0, width=5, height=5)
        assert session.pool.idle_count == 1

    @pytest.mark.asyncio
    async def test_missing_recognize_capability(self, png_bytes):
        session = RecognitionSession(FakeBackend(engine_cls=NoRecognizeEngine))

        with pytest.raises(CapabilityMissingError) as exc_info:
            await session.recognize(png_bytes)

        assert not exc_info.value.retryable
        assert session.pool.idle_count == 1

    @pytest.mark.asyncio
    async def test_concurrent_languages_with_single_engine(self, png_bytes):
        backend = FakeBackend(recognize_delay=0.05)
        session = RecognitionSession(backend)

        first, second = await asyncio.gather(
            session.recognize(png_bytes, {"lang": "eng"}),
            session.recognize(png_bytes, {"lang": "deu"}),
        )

        assert {first.language, second.language} == {"eng", "deu"}
        events = [e for e in backend.log.events if e[0] in ("initialize", "recognize")]
        a, b = events[0][1], events[2][1]
        assert events == [
            ("initialize", a),
            ("recognize", a),
            ("initialize", b),
            ("recognize", b),
        ]
        assert a != b

    @pytest.mark.asyncio
    async def test_status_notices(self, png_bytes):
        notices = []
        session = RecognitionSession(FakeBackend(), status=notices.append)

        await session.recognize(png_bytes, {"lang": "deu"})

        assert notices == [StatusNotice.busy("recognizing (deu)"), StatusNotice.clear()]

    @pytest.mark.asyncio
    async def test_failed_status_notice(self, png_bytes):
        notices = []
        session = RecognitionSession(
            FakeBackend(fail_recognize=True), status=notices.append
        )

        with pytest.raises(EngineFailureError):
            await session.recognize(png_bytes)

        assert notices[-1].text == "failed"

    @pytest.mark.asyncio
    async def test_broken_status_sink_is_ignored(self, png_bytes):
        def sink(notice):
            raise RuntimeError("host went away")

        session = RecognitionSession(FakeBackend(), status=sink)

        result = await session.recognize(png_bytes)
        assert result.text == "42"

    @pytest.mark.asyncio
    async def test_close_terminates_engines(self, png_bytes):
        backend = FakeBackend()
        session = RecognitionSession(backend)
        await session.recognize(png_bytes, {"pool_size": 2})

        await session.close()

        assert session.pool.size == 0
        assert [e.terminate_calls for e in backend.engines] == [1, 1]
